"""
Step 6: Deployment summary module
Terminal step: reports what the distilled edge model would alert on and exports the run.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from .models import SessionState
from .overlay import draw_detections

logger = logging.getLogger(__name__)

SUMMARY_FILE = "summary.json"
ANNOTATED_FILE = "annotated.jpg"


def detection_lines(state: SessionState) -> List[str]:
    """One line per detected box."""
    return [f"{box.label} detected." for box in state.bounding_boxes or ()]


def build_summary(state: SessionState) -> Dict:
    """Collect all accumulated outputs of the run into a JSON-serializable dict."""
    return {
        "media": {
            "filename": state.media.filename if state.media else None,
            "kind": state.media_kind.value if state.media_kind else None,
        },
        "narrative": state.narrative,
        "labels": state.labels.to_dict() if state.labels else None,
        "bounding_boxes": [box.to_dict() for box in state.bounding_boxes or ()],
        "filtered_labels": list(state.filtered_labels or ()),
        "masked_label": state.masked_label,
        "alerts": detection_lines(state),
    }


def write_report(state: SessionState, output_dir: Path, jpeg_quality: int = 90) -> Optional[Path]:
    """
    Save the run summary and, when detections exist, the annotated frame.

    Args:
        state: Session state at the summary step
        output_dir: Directory to write into
        jpeg_quality: Quality of the annotated JPEG

    Returns:
        Path to the annotated image, or None if there was nothing to draw
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    summary_file = output_dir / SUMMARY_FILE
    with open(summary_file, 'w', encoding='utf-8') as f:
        json.dump(build_summary(state), f, indent=2, ensure_ascii=False)
    logger.info(f"Summary saved to {summary_file}")

    if state.analysis_image is None or not state.bounding_boxes:
        return None

    annotated_file = output_dir / ANNOTATED_FILE
    annotated_file.write_bytes(
        draw_detections(
            state.analysis_image.data,
            state.bounding_boxes,
            state.filtered_labels,
            state.masked_label,
            jpeg_quality=jpeg_quality,
        )
    )
    logger.info(f"Annotated frame saved to {annotated_file}")
    return annotated_file
