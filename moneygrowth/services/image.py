"""
Receipt Photo Checks

Before a receipt photo is sent to Gemini it is opened locally with
Pillow: a file that is not an image, or one too small or too dark to
read, is refused without spending an API call. Milder problems are
returned as warnings so the user can double-check the scanned fields.
"""

from enum import Enum
from io import BytesIO

import structlog
from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, Field


logger = structlog.get_logger(__name__)

MIN_SIDE_PX = 300
LOW_SIDE_PX = 500

_MIME_TYPES = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
}


class ImageQuality(str, Enum):
    GOOD = "good"
    ACCEPTABLE = "acceptable"
    POOR = "poor"
    UNUSABLE = "unusable"


class UnreadableImageError(ValueError):
    """The upload cannot be used as a receipt photo. Message is user-facing."""
    pass


class ReceiptImageCheck(BaseModel):
    quality: ImageQuality
    score: float = Field(ge=0, le=1)
    mime_type: str
    issues: list[str] = Field(default_factory=list)


def assess_receipt_image(image_bytes: bytes) -> ReceiptImageCheck:
    """
    Score a receipt photo from 0 to 1 with simple heuristics.

    Checks resolution, aspect ratio and exposure (via the grayscale
    histogram).

    Raises:
        UnreadableImageError: If the bytes are not a supported image or the
            photo is unusable
    """
    try:
        img = Image.open(BytesIO(image_bytes))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise UnreadableImageError("El archivo no es una imagen válida.") from e

    mime_type = _MIME_TYPES.get(img.format or "")
    if mime_type is None:
        raise UnreadableImageError("Formato de imagen no admitido. Usa JPG, PNG o WEBP.")

    issues = []
    score = 1.0

    width, height = img.size
    min_side = min(width, height)
    if min_side < MIN_SIDE_PX:
        issues.append("La resolución es demasiado baja para leer el recibo.")
        score -= 0.5
    elif min_side < LOW_SIDE_PX:
        issues.append("La resolución es baja; revisa los datos leídos.")
        score -= 0.2

    if max(width, height) / max(min_side, 1) > 5:
        issues.append("La imagen parece recortada de forma extraña.")
        score -= 0.2

    histogram = img.convert("L").histogram()
    total_pixels = sum(histogram)
    if sum(histogram[:50]) / total_pixels > 0.7:
        issues.append("La foto está muy oscura.")
        score -= 0.3
    if sum(histogram[200:]) / total_pixels > 0.7:
        issues.append("La foto está sobreexpuesta.")
        score -= 0.3

    score = max(0.0, min(1.0, score))
    if score >= 0.7:
        quality = ImageQuality.GOOD
    elif score >= 0.5:
        quality = ImageQuality.ACCEPTABLE
    elif score >= 0.3:
        quality = ImageQuality.POOR
    else:
        quality = ImageQuality.UNUSABLE

    logger.info(
        "receipt_image_assessed",
        quality=quality.value,
        score=score,
        width=width,
        height=height,
    )

    if quality == ImageQuality.UNUSABLE:
        raise UnreadableImageError(
            "La foto no se puede leer: " + " ".join(issues) + " Haz otra foto con más luz y más cerca."
        )

    return ReceiptImageCheck(quality=quality, score=score, mime_type=mime_type, issues=issues)
