"""Tests for Pillow-based palette extraction."""

import io

import httpx
import pytest
from PIL import Image

from clients.palette_client import PaletteClient, Swatch, build_palette, extract_swatches, palette_from_bytes
from utils.errors import PaletteError


def _png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


class TestSwatches:
    def test_transparent_and_white_pixels_are_ignored(self):
        image = Image.new("RGBA", (10, 10), (255, 255, 255, 255))
        for x in range(5):
            image.putpixel((x, 0), (0, 0, 200, 255))
            image.putpixel((x, 1), (200, 0, 0, 0))

        swatches = extract_swatches(image)

        assert sum(s.population for s in swatches) == 5
        assert all(s.rgb[2] > s.rgb[0] for s in swatches)

    def test_fully_white_image_has_no_swatches(self):
        assert extract_swatches(Image.new("RGB", (20, 20), (255, 255, 255))) == []


class TestBuildPalette:
    def test_roles_are_assigned_by_saturation_and_lightness(self):
        palette = build_palette(
            [
                Swatch(rgb=(230, 30, 30), population=50),  # saturated, mid
                Swatch(rgb=(40, 10, 90), population=20),  # saturated, dark
                Swatch(rgb=(128, 120, 110), population=30),  # grey, mid
            ]
        )
        assert palette.vibrant == "#e61e1e"
        assert palette.dark_vibrant == "#280a5a"
        assert palette.muted == "#80786e"
        assert palette.light_vibrant is None

    def test_each_swatch_used_once(self):
        palette = build_palette([Swatch(rgb=(230, 30, 30), population=1)])
        assigned = [value for value in palette.model_dump().values() if value]
        assert assigned == ["#e61e1e"]


class TestPaletteFromBytes:
    def test_solid_red_logo(self):
        palette = palette_from_bytes(_png(Image.new("RGB", (40, 40), (220, 20, 20))))
        assert palette.vibrant is not None
        assert palette.muted is None

    def test_unreadable_bytes(self):
        with pytest.raises(PaletteError):
            palette_from_bytes(b"definitely not an image")

    def test_blank_image_has_no_palette(self):
        with pytest.raises(PaletteError):
            palette_from_bytes(_png(Image.new("RGBA", (10, 10), (0, 0, 0, 0))))


class TestPaletteClient:
    @pytest.mark.asyncio
    async def test_downloads_and_extracts(self):
        payload = _png(Image.new("RGB", (16, 16), (20, 40, 200)))

        def handler(request):
            return httpx.Response(200, content=payload, headers={"Content-Type": "image/png"})

        client = PaletteClient()
        client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        try:
            palette = await client.palette_of("https://img.x.com/logo.png")
        finally:
            await client.aclose()
        assert palette.vibrant is not None

    @pytest.mark.asyncio
    async def test_http_error_becomes_palette_error(self):
        client = PaletteClient()
        client._client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
        with pytest.raises(PaletteError):
            await client.palette_of("https://img.x.com/missing.png")
        await client.aclose()
