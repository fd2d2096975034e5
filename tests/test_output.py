import os

import pytest
from PIL import Image

from output import OutputError, prepare_image, write_image


def _dashboard(size=(40, 20)):
    img = Image.new("RGBA", size, (255, 255, 255, 255))
    img.putpixel((0, 0), (0, 0, 0, 255))
    return img


def test_written_image_is_grayscale(tmp_path):
    destination = tmp_path / "infoscreen.png"

    result = write_image(_dashboard(), str(destination))

    assert result == str(destination)
    with Image.open(destination) as written:
        assert written.mode == "L"
        assert written.size == (40, 20)
        assert written.getpixel((0, 0)) == 0
        assert written.getpixel((1, 0)) == 255
    assert not os.path.exists(f"{destination}.tmp")


def test_rotation_swaps_dimensions(tmp_path):
    destination = tmp_path / "rotated.png"

    write_image(_dashboard(), str(destination), rotation=90)

    with Image.open(destination) as written:
        assert written.size == (20, 40)
        # counter-clockwise: the top-left pixel ends up bottom-left
        assert written.getpixel((0, 39)) == 0


def test_colour_output_keeps_rgba():
    prepared = prepare_image(_dashboard(), grayscale=False)

    assert prepared.mode == "RGBA"


def test_transparent_pixels_become_white():
    img = Image.new("RGBA", (4, 4), (0, 0, 0, 0))

    prepared = prepare_image(img)

    assert prepared.getpixel((0, 0)) == 255


def test_unwritable_destination_raises(tmp_path):
    destination = tmp_path / "missing" / "infoscreen.png"

    with pytest.raises(OutputError):
        write_image(_dashboard(), str(destination))

    assert not os.path.exists(f"{destination}.tmp")
    assert not destination.exists()


def test_existing_file_is_replaced(tmp_path):
    destination = tmp_path / "infoscreen.png"
    destination.write_bytes(b"old")

    write_image(_dashboard(), str(destination))

    with Image.open(destination) as written:
        assert written.format == "PNG"
