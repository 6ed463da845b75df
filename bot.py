"""
Telegram bot front-end for the fleet safety annotation wizard
"""

import os
import asyncio
import logging
import logging.handlers
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import psutil
from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Message, Update
from telegram.constants import ParseMode
from telegram.ext import Application, CallbackQueryHandler, CommandHandler, ContextTypes, MessageHandler, filters

from annotation_pipeline import (
    AnnotationPipelineError,
    FrameExtractor,
    MediaKind,
    StepId,
    StepSequencer,
    STEPS,
    WizardSession,
    create_service,
)
from annotation_pipeline.config import load_settings
from annotation_pipeline.overlay import draw_detections
from annotation_pipeline.presentation import step_card, step_result, welcome_text
from annotation_pipeline.Step_0_upload import classify_media

# Configure logging first
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=logging.INFO
)
logger = logging.getLogger(__name__)

settings = load_settings()
logging.getLogger().setLevel(getattr(logging, settings.log_level, logging.INFO))

MAX_WORKERS = 4
RUN_STEP = "run_step"
RESTART = "restart"

# Steps after which the annotated frame is worth showing
OVERLAY_STEPS = {StepId.BOUNDING_BOXES, StepId.FILTER_BOXES, StepId.MASKS}


def set_worker_priority():
    """Set worker thread priority to below normal."""
    try:
        current_process = psutil.Process()
        if os.name == 'nt':  # Windows
            current_process.nice(psutil.BELOW_NORMAL_PRIORITY_CLASS)
        else:  # Linux/Unix
            current_process.nice(10)
    except (psutil.Error, OSError) as e:
        logger.warning(f"Could not set worker priority: {e}")


# Frame extraction and overlay drawing are blocking OpenCV calls
worker_pool = ThreadPoolExecutor(
    max_workers=MAX_WORKERS,
    thread_name_prefix="worker",
    initializer=set_worker_priority
)

# Configure logging with file rotation
log_handler = logging.handlers.RotatingFileHandler(
    'bot.log',
    maxBytes=10*1024*1024,  # 10MB
    backupCount=5
)
log_handler.setFormatter(logging.Formatter(
    '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
))
logger.addHandler(log_handler)
logging.getLogger("annotation_pipeline").addHandler(log_handler)


def get_session(context: ContextTypes.DEFAULT_TYPE) -> WizardSession:
    """Return the user's wizard session, creating it on first use."""
    session = context.user_data.get('session')
    if session is None:
        session = WizardSession(
            context.bot_data['sequencer'],
            extractor=context.bot_data['extractor'],
            executor=worker_pool,
        )
        context.user_data['session'] = session
    return session


def card_markup(session: WizardSession) -> Optional[InlineKeyboardMarkup]:
    """Button for the current step, or Start Over on the summary."""
    state = session.state
    if state.is_terminal:
        return InlineKeyboardMarkup([[InlineKeyboardButton("Start Over 🔄", callback_data=RESTART)]])
    if state.step_index == 0:
        return None
    return InlineKeyboardMarkup([[InlineKeyboardButton(state.current_step.action_label, callback_data=RUN_STEP)]])


async def send_card(message: Message, session: WizardSession) -> None:
    await message.reply_text(
        step_card(session.state, session.mock_mode),
        reply_markup=card_markup(session),
        parse_mode=ParseMode.HTML
    )


async def send_error(message: Message, session: WizardSession, error: AnnotationPipelineError) -> None:
    await message.reply_text(f"❌ {session.error or str(error)}")


async def send_overlay(message: Message, session: WizardSession) -> None:
    """Send the analysis frame with the current detections drawn on it."""
    state = session.state
    if state.analysis_image is None or not state.bounding_boxes:
        return
    loop = asyncio.get_running_loop()
    try:
        annotated = await loop.run_in_executor(
            worker_pool,
            lambda: draw_detections(
                state.analysis_image.data,
                state.bounding_boxes,
                state.filtered_labels,
                state.masked_label,
                jpeg_quality=settings.jpeg_quality
            )
        )
    except AnnotationPipelineError as e:
        logger.error(f"Could not draw detections: {e}")
        await message.reply_text(f"❌ Could not draw detections: {e}")
        return
    await message.reply_photo(photo=annotated)


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Send a message when the command /start is issued."""
    session = get_session(context)
    await update.message.reply_text(welcome_text(session.mock_mode), parse_mode=ParseMode.HTML)
    if session.state.step_index > 0:
        await send_card(update.message, session)


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Send a message when the command /help is issued."""
    steps = "\n".join(f"{index}. {step.name}" for index, step in enumerate(STEPS, start=1))
    await update.message.reply_text(
        "🚚 <b>Fleet Annotation Bot Help</b>\n\n"
        "<b>Commands:</b>\n"
        "/start - Show the welcome message\n"
        "/help - Show this help message\n"
        "/restart - Clear the current run\n\n"
        "<b>How to use:</b>\n"
        "1. Send an image or a short MP4 video\n"
        "2. Press the button under each step card to run it\n"
        "3. Review the narrative, labels and detections as they arrive\n\n"
        f"<b>Steps:</b>\n{steps}",
        parse_mode=ParseMode.HTML
    )


async def restart_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Clear the user's run."""
    session = get_session(context)
    session.restart()
    await update.message.reply_text(welcome_text(session.mock_mode), parse_mode=ParseMode.HTML)


async def handle_restart(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle the Start Over button."""
    query = update.callback_query
    await query.answer()
    session = get_session(context)
    session.restart()
    await query.edit_message_reply_markup(reply_markup=None)
    await query.message.reply_text(welcome_text(session.mock_mode), parse_mode=ParseMode.HTML)


async def process_upload(
    update: Update,
    context: ContextTypes.DEFAULT_TYPE,
    file_id: str,
    file_size: Optional[int],
    mime_type: str,
    filename: str
) -> None:
    """Download an uploaded file and start a new run with it."""
    session = get_session(context)
    message = update.message

    if file_size and file_size > settings.max_upload_size:
        await message.reply_text(
            f"❌ File is too large. Please send a file under {settings.max_upload_size // (1024 * 1024)}MB."
        )
        return

    # Reject before downloading anything we cannot use
    try:
        kind = classify_media(mime_type)
    except AnnotationPipelineError as e:
        await message.reply_text(f"❌ {e}")
        return

    tg_file = await context.bot.get_file(file_id)
    data = bytes(await tg_file.download_as_bytearray())

    status = None
    if kind == MediaKind.VIDEO:
        status = await message.reply_text("⚙️ Processing video... extracting a frame for analysis.")

    try:
        await session.upload(data, mime_type, filename)
    except AnnotationPipelineError as e:
        await send_error(message, session, e)
        await send_card(message, session)
        return
    finally:
        if status:
            await status.delete()

    logger.info(f"User {update.effective_user.id} uploaded {filename} ({kind.value})")
    await send_card(message, session)


async def handle_photo(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle compressed photo messages."""
    photo = update.message.photo[-1]
    await process_upload(update, context, photo.file_id, photo.file_size, "image/jpeg",
                         f"{photo.file_unique_id}.jpg")


async def handle_video(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle video messages."""
    video = update.message.video
    await process_upload(update, context, video.file_id, video.file_size, video.mime_type or "video/mp4",
                         video.file_name or f"{video.file_unique_id}.mp4")


async def handle_document(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle files sent as documents (uncompressed images, videos, anything else)."""
    document = update.message.document
    await process_upload(update, context, document.file_id, document.file_size,
                         document.mime_type or "application/octet-stream",
                         document.file_name or document.file_unique_id)


async def handle_run_step(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Run the current step when its button is pressed."""
    query = update.callback_query
    await query.answer()
    session = get_session(context)
    generation = session.generation

    await query.edit_message_reply_markup(reply_markup=None)
    status = await query.message.reply_text(f"🔍 {session.state.current_step.name}...")

    try:
        await session.run_step()
    except AnnotationPipelineError as e:
        await send_error(query.message, session, e)
        await send_card(query.message, session)
        return
    finally:
        await status.delete()

    if generation != session.generation:
        # Restarted while the step was running
        return

    state = session.state
    result = step_result(state)
    if result:
        await query.message.reply_text(result, parse_mode=ParseMode.HTML)
    if STEPS[state.step_index - 1].id in OVERLAY_STEPS:
        await send_overlay(query.message, session)
    await send_card(query.message, session)


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Log errors raised by handlers."""
    logger.error("Unhandled error while processing update", exc_info=context.error)


def main() -> None:
    """Start the bot."""
    if not settings.telegram_bot_token:
        logger.error("Missing required environment variable: TELEGRAM_BOT_TOKEN")
        raise SystemExit(1)

    service = create_service(settings)

    application = (
        Application.builder()
        .token(settings.telegram_bot_token)
        .concurrent_updates(True)
        .http_version('2')
        .get_updates_http_version('2')
        .connect_timeout(30)
        .read_timeout(30)
        .write_timeout(30)
        .pool_timeout(30)
        .build()
    )
    application.bot_data['sequencer'] = StepSequencer(service)
    application.bot_data['extractor'] = FrameExtractor(jpeg_quality=settings.jpeg_quality)

    application.add_handler(CommandHandler("start", start, block=False))
    application.add_handler(CommandHandler("help", help_command, block=False))
    application.add_handler(CommandHandler("restart", restart_command, block=False))
    application.add_handler(CallbackQueryHandler(handle_run_step, pattern=f"^{RUN_STEP}$", block=False))
    application.add_handler(CallbackQueryHandler(handle_restart, pattern=f"^{RESTART}$", block=False))
    application.add_handler(MessageHandler(filters.PHOTO, handle_photo, block=False))
    application.add_handler(MessageHandler(filters.VIDEO, handle_video, block=False))
    application.add_handler(MessageHandler(filters.Document.ALL, handle_document, block=False))
    application.add_error_handler(error_handler)

    application.run_polling(
        allowed_updates=Update.ALL_TYPES,
        drop_pending_updates=True
    )


if __name__ == '__main__':
    try:
        main()
    finally:
        worker_pool.shutdown(wait=True)
