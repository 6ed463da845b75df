"""
Main entry point for the annotation pipeline.
Walks every wizard step for one image or video file and saves the results.
"""

import asyncio
import logging
import mimetypes
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from annotation_pipeline import (
    AnnotationPipelineError,
    FrameExtractor,
    StepSequencer,
    WizardSession,
    create_service,
)
from annotation_pipeline.config import load_settings
from annotation_pipeline.Step_6_deploy_summary import build_summary, write_report

settings = load_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def run_pipeline(file_path: Path, output_dir: Path) -> Optional[Path]:
    """Upload the file and advance until the summary step."""
    mime_type, _ = mimetypes.guess_type(file_path.name)
    session = WizardSession(
        StepSequencer(create_service(settings)),
        extractor=FrameExtractor(jpeg_quality=settings.jpeg_quality),
    )
    if session.mock_mode:
        logger.warning("Running in mock mode with simulated data.")

    state = await session.upload(file_path.read_bytes(), mime_type or "", file_path.name)
    logger.info(f"Uploaded {file_path.name} as {state.media_kind.value}")

    while not state.is_terminal:
        step = state.current_step
        state = await session.run_step()
        logger.info(f"Completed: {step.name}")

    summary = build_summary(state)
    logger.info(f"Narrative: {summary['narrative']}")
    for alert in summary["alerts"]:
        logger.info(f"Alert: {alert}")
    logger.info(f"Filtered labels: {summary['filtered_labels']}")
    logger.info(f"Masked label: {summary['masked_label']}")

    return write_report(state, output_dir, jpeg_quality=settings.jpeg_quality)


def main() -> None:
    """Main entry point."""
    if len(sys.argv) < 2:
        print("Usage: python main.py <image_or_video_file> [output_dir]")
        print("\nSupported files: images (PNG, JPG) and videos (MP4)")
        print("Set OPENAI_API_KEY to use the live service; otherwise mock mode is used.")
        sys.exit(1)

    file_path = Path(sys.argv[1])
    if not file_path.is_file():
        logger.error(f"File not found: {file_path}")
        sys.exit(1)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    output_dir = Path(sys.argv[2]) if len(sys.argv) > 2 else Path(f"annotation_{timestamp}")

    try:
        logger.debug("Starting annotation pipeline...")
        annotated = asyncio.run(run_pipeline(file_path, output_dir))
        logger.info("Processing complete!")
        logger.info(f"Results saved in: {output_dir}")
        if annotated:
            logger.info(f"Annotated frame: {annotated}")
    except AnnotationPipelineError as e:
        logger.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
