from photo_cropper.app import main

main()
