"""
Draws detections on the analysis image.
Filtered-out boxes are faded and the masked label is highlighted with a translucent fill.
"""

import logging
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from .errors import ExtractionError
from .models import BoundingBox

logger = logging.getLogger(__name__)

# BGR
BOX_COLOR = (248, 211, 34)
MASK_COLOR = (250, 132, 192)
TEXT_COLOR = (0, 0, 0)
FADED_ALPHA = 0.3
MASK_FILL_ALPHA = 0.3


def _to_pixels(box: BoundingBox, width: int, height: int) -> Tuple[int, int, int, int]:
    x, y, w, h = box.box
    x1, y1 = int(x * width), int(y * height)
    x2, y2 = int(min(x + w, 1.0) * width), int(min(y + h, 1.0) * height)
    return x1, y1, max(x2 - 1, x1), max(y2 - 1, y1)


def _draw_box(image: np.ndarray, box: BoundingBox, color: Tuple[int, int, int]) -> None:
    height, width = image.shape[:2]
    x1, y1, x2, y2 = _to_pixels(box, width, height)
    cv2.rectangle(image, (x1, y1), (x2, y2), color, 2)

    scale = max(0.4, width / 1600)
    (text_w, text_h), baseline = cv2.getTextSize(box.label, cv2.FONT_HERSHEY_SIMPLEX, scale, 1)
    # Label tab sits above the box unless that would leave the image
    top = y1 - text_h - baseline - 4 if y1 - text_h - baseline - 4 >= 0 else y1
    cv2.rectangle(image, (x1, top), (x1 + text_w + 6, top + text_h + baseline + 4), color, -1)
    cv2.putText(image, box.label, (x1 + 3, top + text_h + 2), cv2.FONT_HERSHEY_SIMPLEX, scale, TEXT_COLOR, 1,
                cv2.LINE_AA)


def draw_detections(
    image_bytes: bytes,
    boxes: Sequence[BoundingBox],
    filtered_labels: Optional[Sequence[str]] = None,
    masked_label: Optional[str] = None,
    jpeg_quality: int = 90,
) -> bytes:
    """
    Render detections onto a copy of the image.

    Args:
        image_bytes: Encoded analysis image
        boxes: Detections with normalized coordinates
        filtered_labels: Labels kept by the filter step; other boxes are faded when non-empty
        masked_label: Label selected by the mask step

    Returns:
        JPEG bytes of the annotated image

    Raises:
        ExtractionError: if the image cannot be decoded or encoded
    """
    image = cv2.imdecode(np.frombuffer(image_bytes, dtype=np.uint8), cv2.IMREAD_COLOR)
    if image is None:
        raise ExtractionError("Could not decode analysis image")

    is_filtered = bool(boxes) and bool(filtered_labels)
    kept = set(filtered_labels or ())

    faded = [b for b in boxes if is_filtered and b.label not in kept and b.label != masked_label]
    masked = [b for b in boxes if masked_label and b.label == masked_label]
    regular = [b for b in boxes if b not in faded and b not in masked]

    if faded:
        layer = image.copy()
        for box in faded:
            _draw_box(layer, box, BOX_COLOR)
        image = cv2.addWeighted(layer, FADED_ALPHA, image, 1 - FADED_ALPHA, 0)

    for box in regular:
        _draw_box(image, box, BOX_COLOR)

    if masked:
        height, width = image.shape[:2]
        layer = image.copy()
        for box in masked:
            x1, y1, x2, y2 = _to_pixels(box, width, height)
            cv2.rectangle(layer, (x1, y1), (x2, y2), MASK_COLOR, -1)
        image = cv2.addWeighted(layer, MASK_FILL_ALPHA, image, 1 - MASK_FILL_ALPHA, 0)
        for box in masked:
            _draw_box(image, box, MASK_COLOR)

    ok, buffer = cv2.imencode(".jpg", image, [int(cv2.IMWRITE_JPEG_QUALITY), jpeg_quality])
    if not ok:
        raise ExtractionError("Annotated image to JPEG conversion failed")
    logger.debug(f"Drew {len(boxes)} boxes ({len(faded)} faded, {len(masked)} masked)")
    return buffer.tobytes()
