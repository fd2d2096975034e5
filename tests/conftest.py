import pytest
from PIL import Image, ImageFont

from config import CanvasConfig
from screens.text import FontSet, half_font_size


def _font(size: int) -> ImageFont.FreeTypeFont:
    return ImageFont.load_default(size=size)


@pytest.fixture
def canvas() -> CanvasConfig:
    return CanvasConfig(
        name="test",
        width=400,
        height=300,
        font_large=40,
        font_medium=14,
        font_small=10,
        output="test.png",
    )


@pytest.fixture
def fonts(canvas) -> FontSet:
    return FontSet(
        large=_font(canvas.font_large),
        half=_font(half_font_size(canvas.font_large)),
        medium=_font(canvas.font_medium),
        small=_font(canvas.font_small),
    )


@pytest.fixture
def icon_dir(tmp_path):
    directory = tmp_path / "icons"
    directory.mkdir()
    for code in ("10d", "01n", "04d"):
        Image.new("RGBA", (100, 100), (0, 0, 0, 255)).save(directory / f"{code}@2x.png")
        Image.new("RGBA", (40, 40), (0, 0, 0, 255)).save(directory / f"{code}.png")
    return directory
