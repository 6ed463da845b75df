"""
Text rendering of the wizard for chat front-ends.
All user- and model-provided text is HTML-escaped for Telegram's HTML parse mode.
"""

import re
from html import escape
from typing import List, Optional

from .models import LabelCategories, SessionState, STEPS, StepId
from .Step_6_deploy_summary import detection_lines

APP_NAME = "FleetVision AI"
TAGLINE = "Unsupervised Video Segmentation & Labeling for Trucking and Fleet Management"
MOCK_WARNING = "⚠️ <b>Warning:</b> No API key found. Running in mock mode with simulated data."


def progress_bar(step_index: int) -> str:
    """Generate a progress bar based on current step."""
    total = len(STEPS) - 1
    filled = "█" * step_index
    empty = "░" * (total - step_index)
    percentage = (step_index / total) * 100
    return f"{filled}{empty} {percentage:.0f}%"


def stepper(step_index: int) -> str:
    """Checklist of all steps with the current one marked."""
    lines = []
    for index, step in enumerate(STEPS):
        if index < step_index:
            marker = "✅"
        elif index == step_index:
            marker = "▶️"
        else:
            marker = "▫️"
        lines.append(f"{marker} {escape(step.name)}")
    return "\n".join(lines)


def _category_title(wire_key: str) -> str:
    # driverMonitoring -> Driver Monitoring
    return re.sub(r"([A-Z])", r" \1", wire_key).strip().title()


def format_labels(labels: LabelCategories) -> str:
    """Non-empty label buckets, one block per category."""
    blocks = []
    for wire_key, values in labels.to_dict().items():
        if values:
            blocks.append(f"<b>{_category_title(wire_key)}</b>\n" + ", ".join(escape(v) for v in values))
    return "\n\n".join(blocks) if blocks else "<i>No labels proposed.</i>"


def format_detections(state: SessionState) -> str:
    if not state.bounding_boxes:
        return "<i>No objects detected.</i>"
    lines = []
    for box in state.bounding_boxes:
        x, y, w, h = box.box
        lines.append(f"• {escape(box.label)} [{x:.2f}, {y:.2f}, {w:.2f}, {h:.2f}]")
    return "\n".join(lines)


def welcome_text(mock_mode: bool) -> str:
    text = (
        f"🚚 <b>{APP_NAME}</b>\n"
        f"{escape(TAGLINE)}\n\n"
        "Send me an image (PNG, JPG) or a short video (MP4) to begin."
    )
    if mock_mode:
        text = MOCK_WARNING + "\n\n" + text
    return text


def step_card(state: SessionState, mock_mode: bool = False) -> str:
    """Card for the current step: progress, checklist, title, description and the inputs it will use."""
    step = state.current_step
    parts: List[str] = []
    if mock_mode:
        parts.append(MOCK_WARNING)
    parts.append(f"Progress: {progress_bar(state.step_index)}")
    parts.append(stepper(state.step_index))
    parts.append(f"<b>{escape(step.title)}</b>\n{escape(step.description)}")

    if step.id == StepId.LABELS and state.narrative:
        parts.append(f"<i>\"{escape(state.narrative)}\"</i>")
    elif step.id == StepId.BOUNDING_BOXES and state.labels:
        parts.append(format_labels(state.labels))
    elif step.id == StepId.SUMMARY:
        parts.append("<b>Real-Time Analysis Complete</b>\n" + summary_text(state))

    return "\n\n".join(parts)


def step_result(state: SessionState) -> Optional[str]:
    """Output of the step that just completed, i.e. the one before ``state.current_step``."""
    if state.step_index == 0:
        return None
    completed = STEPS[state.step_index - 1]

    if completed.id == StepId.NARRATIVE:
        body = escape(state.narrative or "")
    elif completed.id == StepId.LABELS:
        body = format_labels(state.labels) if state.labels else ""
    elif completed.id == StepId.BOUNDING_BOXES:
        body = format_detections(state)
    elif completed.id == StepId.FILTER_BOXES:
        kept = state.filtered_labels or ()
        body = ("Kept driver-monitoring detections: " + ", ".join(escape(v) for v in kept)) if kept \
            else "<i>No driver-monitoring detections kept.</i>"
    elif completed.id == StepId.MASKS:
        body = f"Masklet propagated for: <b>{escape(state.masked_label)}</b>" if state.masked_label \
            else "<i>No object selected for masking.</i>"
    else:
        return None
    return f"✅ <b>{escape(completed.name)}</b>\n{body}"


def summary_text(state: SessionState) -> str:
    lines = detection_lines(state)
    if not lines:
        return "<i>No objects detected.</i>"
    return "\n".join(f"• {escape(line)}" for line in lines)
