"""Brand palette extraction from an image URL using Pillow.

The image is downsampled, transparent and near-white pixels are dropped, the
rest is median-cut quantised and every swatch is scored against six HSL
targets (vibrant / light vibrant / dark vibrant / muted / light muted /
dark muted).  The best-scoring unused swatch wins each role.
"""

from __future__ import annotations

import asyncio
import colorsys
import io
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import httpx
from loguru import logger
from PIL import Image, UnidentifiedImageError

from config.settings import settings
from models.company import Palette
from utils.errors import PaletteError

SAMPLE_SIZE = (100, 100)
QUANTIZE_COLORS = 16
MIN_ALPHA = 125
WHITE_THRESHOLD = 250

WEIGHT_SATURATION = 3.0
WEIGHT_LUMA = 6.5
WEIGHT_POPULATION = 0.5


@dataclass(frozen=True)
class _Target:
    role: str
    target_luma: float
    min_luma: float
    max_luma: float
    target_sat: float
    min_sat: float
    max_sat: float


# Order matters: earlier roles get first pick of the swatches.
_TARGETS: Tuple[_Target, ...] = (
    _Target("vibrant", 0.5, 0.3, 0.7, 1.0, 0.35, 1.0),
    _Target("light_vibrant", 0.74, 0.55, 1.0, 1.0, 0.35, 1.0),
    _Target("dark_vibrant", 0.26, 0.0, 0.45, 1.0, 0.35, 1.0),
    _Target("muted", 0.5, 0.3, 0.7, 0.3, 0.0, 0.4),
    _Target("light_muted", 0.74, 0.55, 1.0, 0.3, 0.0, 0.4),
    _Target("dark_muted", 0.26, 0.0, 0.45, 0.3, 0.0, 0.4),
)


@dataclass(frozen=True)
class Swatch:
    rgb: Tuple[int, int, int]
    population: int

    @property
    def hex(self) -> str:
        return "#{:02x}{:02x}{:02x}".format(*self.rgb)

    @property
    def hsl(self) -> Tuple[float, float, float]:
        r, g, b = (channel / 255.0 for channel in self.rgb)
        h, l, s = colorsys.rgb_to_hls(r, g, b)
        return h, s, l


def extract_swatches(image: Image.Image) -> List[Swatch]:
    """Quantise the opaque, non-white pixels of *image* into swatches."""
    sample = image.convert("RGBA")
    sample.thumbnail(SAMPLE_SIZE)
    raw = sample.tobytes()

    opaque = bytearray()
    for offset in range(0, len(raw), 4):
        r, g, b, a = raw[offset : offset + 4]
        if a < MIN_ALPHA:
            continue
        if r > WHITE_THRESHOLD and g > WHITE_THRESHOLD and b > WHITE_THRESHOLD:
            continue
        opaque.extend((r, g, b))

    count = len(opaque) // 3
    if count == 0:
        return []
    strip = Image.frombytes("RGB", (count, 1), bytes(opaque))
    quantized = strip.quantize(colors=QUANTIZE_COLORS)
    palette = quantized.getpalette() or []
    swatches = []
    for population, index in quantized.getcolors() or []:
        rgb = tuple(palette[index * 3 : index * 3 + 3])
        if len(rgb) == 3:
            swatches.append(Swatch(rgb=rgb, population=population))  # type: ignore[arg-type]
    return swatches


def _score(swatch: Swatch, target: _Target, max_population: int) -> float:
    _, saturation, luma = swatch.hsl
    values = (
        (1 - abs(saturation - target.target_sat), WEIGHT_SATURATION),
        (1 - abs(luma - target.target_luma), WEIGHT_LUMA),
        (swatch.population / max_population if max_population else 0.0, WEIGHT_POPULATION),
    )
    return sum(value * weight for value, weight in values) / sum(w for _, w in values)


def build_palette(swatches: List[Swatch]) -> Palette:
    """Assign the best matching swatch to each palette role."""
    if not swatches:
        return Palette()
    max_population = max(swatch.population for swatch in swatches)
    used: set = set()
    picks: Dict[str, Optional[str]] = {}
    for target in _TARGETS:
        best: Optional[Swatch] = None
        best_score = -1.0
        for swatch in swatches:
            if swatch.rgb in used:
                continue
            _, saturation, luma = swatch.hsl
            if not (target.min_luma <= luma <= target.max_luma):
                continue
            if not (target.min_sat <= saturation <= target.max_sat):
                continue
            score = _score(swatch, target, max_population)
            if score > best_score:
                best, best_score = swatch, score
        if best is not None:
            used.add(best.rgb)
        picks[target.role] = best.hex if best else None
    return Palette(**picks)


def palette_from_bytes(data: bytes) -> Palette:
    try:
        with Image.open(io.BytesIO(data)) as image:
            swatches = extract_swatches(image)
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise PaletteError(f"Unreadable image: {exc}") from exc
    palette = build_palette(swatches)
    if not any(palette.model_dump().values()):
        raise PaletteError("Image has no usable colours")
    return palette


class PaletteClient:
    """Downloads an image and derives its palette off the event loop."""

    def __init__(self, timeout: Optional[float] = None) -> None:
        self._timeout = timeout or settings.palette_timeout_seconds
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "PaletteClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
        return self._client

    async def palette_of(self, image_url: str) -> Palette:
        """Raises ``PaletteError`` when the image cannot be fetched or read."""
        try:
            response = await self._http().get(image_url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise PaletteError(f"Could not download {image_url}: {exc}") from exc
        palette = await asyncio.to_thread(palette_from_bytes, response.content)
        logger.debug(f"PaletteClient: {image_url} → {palette.model_dump()}")
        return palette
