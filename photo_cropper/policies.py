"""
Aspect policies: parse, validate, load and save the crop-shape list.

A policy is either free (the frame follows the image's own aspect) or a
fixed ``ratio_w:ratio_h`` shape whose height is derived from width.
Runtime policies are stored in a JSON file in the user's config directory
(provided by ``config.config_dir()``).  On first launch (or if the file
is missing/corrupt), the file is created from DEFAULT_POLICIES.  This
module is Qt-free.

The on-disk format uses a versioned envelope::

    {"version": 1, "policies": [ ... ]}

Each entry has a ``name`` and, for fixed shapes, positive integer
``ratio_w`` and ``ratio_h``.
"""

import json
import logging
from copy import deepcopy
from dataclasses import dataclass
from math import gcd
from pathlib import Path

from photo_cropper.config import DEFAULT_POLICIES, config_dir

logger = logging.getLogger(__name__)

_POLICIES_FILENAME = "policies.json"
_FORMAT_VERSION = 1

_RATIO_KEYS = ("ratio_w", "ratio_h")


# =============================================================================
# Policy type
# =============================================================================
@dataclass(frozen=True)
class AspectPolicy:
    """Crop shape: free when ratio_w/ratio_h are None, fixed otherwise."""
    name: str
    ratio_w: int | None = None
    ratio_h: int | None = None

    @classmethod
    def free(cls, name: str = "Original") -> "AspectPolicy":
        return cls(name)

    @classmethod
    def fixed(cls, name: str, ratio_w: int, ratio_h: int) -> "AspectPolicy":
        if ratio_w <= 0 or ratio_h <= 0:
            raise ValueError(f"Aspect ratio components must be positive: {ratio_w}:{ratio_h}")
        return cls(name, ratio_w, ratio_h)

    @property
    def is_free(self) -> bool:
        return self.ratio_w is None or self.ratio_h is None

    @property
    def ratio(self) -> float | None:
        """Height over width, or None for the free policy."""
        if self.is_free:
            return None
        return self.ratio_h / self.ratio_w

    @property
    def key(self) -> str:
        """Normalized label, e.g. '4:5', or 'free'."""
        if self.is_free:
            return "free"
        return aspect_key(self.ratio_w, self.ratio_h)

    def to_dict(self) -> dict:
        if self.is_free:
            return {"name": self.name}
        return {"name": self.name, "ratio_w": self.ratio_w, "ratio_h": self.ratio_h}

    @classmethod
    def from_dict(cls, data: dict) -> "AspectPolicy":
        if "ratio_w" in data or "ratio_h" in data:
            return cls.fixed(data["name"], data["ratio_w"], data["ratio_h"])
        return cls.free(data["name"])


# =============================================================================
# Aspect-ratio helpers
# =============================================================================
def normalize_ratio(w: int, h: int) -> tuple[int, int]:
    """Reduce ratio to simplest form via GCD. (8, 10) → (4, 5)"""
    g = gcd(w, h)
    return w // g, h // g


def aspect_key(w: int, h: int) -> str:
    """Normalized string key. (8, 10) → '4:5'"""
    nw, nh = normalize_ratio(w, h)
    return f"{nw}:{nh}"


def parse_ratio(text: str) -> tuple[int, int]:
    """
    Parse an aspect ratio string like '1:1' or '4:5'.

    Raises ValueError if the string is not two positive integers separated
    by a colon.
    """
    parts = text.split(":")
    if len(parts) != 2:
        raise ValueError(f"Invalid aspect ratio format: {text}. Expected 'width:height' (e.g., '1:1', '4:5')")

    try:
        width = int(parts[0])
        height = int(parts[1])
    except ValueError:
        raise ValueError(f"Invalid aspect ratio values: {text}. Both values must be integers")

    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid aspect ratio values: {text}. Both values must be positive")

    return width, height


def default_policies() -> list[AspectPolicy]:
    return [AspectPolicy.from_dict(entry) for entry in DEFAULT_POLICIES]


def find_policy(policies: list[AspectPolicy], name: str) -> AspectPolicy:
    """
    Look up a policy by name (case-insensitive) or by normalized ratio.

    A ``W:H`` string that matches no configured policy becomes an ad-hoc
    fixed policy.  Raises ValueError when nothing matches.
    """
    wanted = name.strip().lower()
    for policy in policies:
        if policy.name.lower() == wanted:
            return policy
    if ":" in wanted:
        w, h = parse_ratio(wanted)
        key = aspect_key(w, h)
        for policy in policies:
            if policy.key == key:
                return policy
        return AspectPolicy.fixed(key, w, h)
    if wanted == "free":
        for policy in policies:
            if policy.is_free:
                return policy
        return AspectPolicy.free()
    names = ", ".join(p.name for p in policies)
    raise ValueError(f"Unknown aspect policy '{name}'. Known policies: {names}")


# =============================================================================
# Config directory helpers
# =============================================================================
def _policies_path() -> Path:
    """Return the full path to policies.json."""
    return config_dir() / _POLICIES_FILENAME


# =============================================================================
# Validation
# =============================================================================
def validate_policies(data: object) -> list[str]:
    """
    Validate a policies data structure.

    Returns a list of error strings (empty means valid).
    """
    errors: list[str] = []

    if not isinstance(data, list):
        errors.append("Policies data must be a list")
        return errors
    if not data:
        errors.append("Policies data must not be empty")
        return errors

    names_seen: set[str] = set()
    keys_seen: dict[str, str] = {}  # normalized key -> policy name

    for i, entry in enumerate(data):
        prefix = f"Policy #{i + 1}"

        if not isinstance(entry, dict):
            errors.append(f"{prefix}: must be a dict")
            continue

        name = entry.get("name")
        if not isinstance(name, str) or not name.strip():
            errors.append(f"{prefix}: name must be a non-empty string")
            continue

        lowered = name.strip().lower()
        if lowered in names_seen:
            errors.append(f"{prefix}: duplicate name '{name}'")
        names_seen.add(lowered)

        present = [k for k in _RATIO_KEYS if k in entry]
        if not present:
            key = "free"
        elif len(present) == 1:
            errors.append(f"{prefix} ('{name}'): ratio_w and ratio_h must be given together")
            continue
        else:
            bad = False
            for k in _RATIO_KEYS:
                val = entry[k]
                # bool is an int subclass; reject it explicitly
                if not isinstance(val, int) or isinstance(val, bool) or val <= 0:
                    errors.append(f"{prefix} ('{name}'): {k} must be a positive integer, got {val!r}")
                    bad = True
            if bad:
                continue
            key = aspect_key(entry["ratio_w"], entry["ratio_h"])

        if key in keys_seen:
            errors.append(f"{prefix} ('{name}'): shape {key} duplicates policy '{keys_seen[key]}'")
        else:
            keys_seen[key] = name

    return errors


# =============================================================================
# Load / Save
# =============================================================================
def load_policies() -> list[AspectPolicy]:
    """
    Load policies from policies.json.

    If the file is missing, corrupt, or fails validation, writes the
    defaults and returns them.
    """
    path = _policies_path()

    if not path.exists():
        logger.info("policies.json not found — creating with defaults at %s", path)
        _write_defaults(path)
        return default_policies()

    try:
        text = path.read_text(encoding="utf-8")
        raw = json.loads(text)
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read policies.json (%s) — restoring defaults", exc)
        _write_defaults(path)
        return default_policies()

    if not isinstance(raw, dict) or raw.get("version") != _FORMAT_VERSION or "policies" not in raw:
        logger.warning("policies.json missing version envelope — restoring defaults")
        _write_defaults(path)
        return default_policies()

    data = raw["policies"]
    errors = validate_policies(data)
    if errors:
        logger.warning(
            "policies.json validation failed:\n  %s\nRestoring defaults.",
            "\n  ".join(errors),
        )
        _write_defaults(path)
        return default_policies()

    return [AspectPolicy.from_dict(entry) for entry in data]


def save_policies(policies: list[AspectPolicy]) -> None:
    """
    Validate and write policies to policies.json in versioned envelope.

    Raises ValueError if validation fails.
    Raises OSError if the file cannot be written.
    """
    data = [p.to_dict() for p in policies]
    errors = validate_policies(data)
    if errors:
        raise ValueError("Invalid policies data:\n  " + "\n  ".join(errors))

    envelope = {"version": _FORMAT_VERSION, "policies": data}
    path = _policies_path()
    path.write_text(json.dumps(envelope, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Saved %d polic(ies) to %s", len(data), path)


def _write_defaults(path: Path) -> None:
    """Write DEFAULT_POLICIES to the given path in versioned envelope."""
    try:
        envelope = {"version": _FORMAT_VERSION, "policies": deepcopy(DEFAULT_POLICIES)}
        path.write_text(
            json.dumps(envelope, indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
    except OSError as exc:
        logger.error("Could not write default policies to %s: %s", path, exc)
