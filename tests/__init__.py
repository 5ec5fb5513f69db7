"""
Test suite for photo-cropper.

unit/ holds fast tests for the geometry core, sessions, policies, image I/O,
the command line and the Qt widget (offscreen).
"""
