"""Telegram front end for practice sessions."""
import asyncio
import logging
from html import escape
from typing import Dict, List, Optional, Set

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.error import TelegramError
from telegram.ext import CallbackContext, ConversationHandler

from lexcelerate import monitoring
from lexcelerate.config import settings
from lexcelerate.errors import PersistenceError, ValidationError
from lexcelerate.models.word_models import PracticePrompt
from lexcelerate.services.catalogue_service import CatalogueService
from lexcelerate.services.pronunciation_service import PronunciationService
from lexcelerate.services.session_service import (
    AudioPlayer,
    PracticeSession,
    SessionController,
    sound_label,
)
from lexcelerate.services.storage_service import KeyValueStore, SqlKeyValueStore
from lexcelerate.services.user_service import UserService

# Get logger for this module
logger = logging.getLogger(__name__)

# Conversation states
MAIN_MENU, ADDING_WORDS, PRACTICING = range(3)

# Button texts
MENU = "🏠 Menu"
ADD_WORD = "📝 Add Word"
PRACTICE = "💡 Practice"
VIEW_STATISTICS = "📊 Statistics"
TALK = "🔊 Talk"
REVEAL = "👁️ Reveal"

def msg_back_to(text: str) -> str: return f"🔙 {text}"

MSG_NOT_LOGGED_IN = "Please /start or /login <username> <password> first"
MSG_ADD_WORD = "Send me the word you want to practice."
MSG_LOGGED_OUT = "Logged out. Use /start or /login <username> <password> to continue."
MSG_START_PRACTICE = "Press Practice to get a word."
MSG_STORAGE_FAILED = "Sorry, I couldn't save your progress. Please try again later."
MSG_REVEAL_NEEDS_SOUND_OFF = "Turn sound off to reveal the word."


class SessionRegistry:
    """Practice sessions of all chats, kept in the application's bot_data."""

    def __init__(self):
        self.sessions: Dict[int, PracticeSession] = {}

    def get(self, chat_id: int) -> Optional[PracticeSession]:
        return self.sessions.get(chat_id)

    def put(self, chat_id: int, session: PracticeSession) -> None:
        self.sessions[chat_id] = session
        monitoring.active_sessions.set(len(self.sessions))

    def pop(self, chat_id: int) -> Optional[PracticeSession]:
        session = self.sessions.pop(chat_id, None)
        monitoring.active_sessions.set(len(self.sessions))
        return session


class TelegramAudio(AudioPlayer):
    """Sends a spoken version of the word to the chat in the background."""

    _pending: Set[asyncio.Task] = set()

    def __init__(self, bot, chat_id: int, pronunciation_service: PronunciationService):
        self.bot = bot
        self.chat_id = chat_id
        self.pronunciation_service = pronunciation_service

    def speak(self, text: str) -> None:
        task = asyncio.get_running_loop().create_task(self._send(text))
        TelegramAudio._pending.add(task)
        task.add_done_callback(TelegramAudio._pending.discard)

    async def _send(self, text: str) -> None:
        path = await asyncio.to_thread(self.pronunciation_service.synthesize, text)
        if path is None:
            return
        try:
            with open(path, "rb") as audio:
                await self.bot.send_audio(chat_id=self.chat_id, audio=audio)
        except (OSError, TelegramError) as e:
            logger.error(f"Error sending audio file: {str(e)}")


def get_registry(context: CallbackContext) -> SessionRegistry:
    return context.bot_data.setdefault("sessions", SessionRegistry())


def get_store(context: CallbackContext) -> KeyValueStore:
    return context.bot_data.setdefault("store", SqlKeyValueStore())


def get_controller(context: CallbackContext, chat_id: int) -> SessionController:
    """Build a controller whose audio goes to chat_id."""
    pronunciation_service = context.bot_data.setdefault("pronunciation", PronunciationService())
    return SessionController(
        CatalogueService(get_store(context)),
        audio=TelegramAudio(context.bot, chat_id, pronunciation_service),
    )


async def log_received(update: Update, context_type: str) -> None:
    """Log message."""
    txt = ""
    if update.callback_query: txt = f" {update.callback_query.data}"
    elif update.message: txt = f" {update.message.text}"
    logger.info(f"Received @{context_type:8} from user {update.effective_user.username} ({update.effective_user.id}){txt}")


async def reply(update: Update, text: str, keyboard: Optional[List[List[InlineKeyboardButton]]] = None) -> None:
    """Answer a message or edit the message behind a pressed button."""
    reply_markup = InlineKeyboardMarkup(keyboard) if keyboard else None
    if update.callback_query:
        await update.callback_query.answer()
        try:
            await update.callback_query.edit_message_text(text, reply_markup=reply_markup, parse_mode="HTML")
        except TelegramError as e:
            logger.warning(f"Error editing message: {e}")
    else:
        await update.message.reply_text(text, reply_markup=reply_markup, parse_mode="HTML")


async def send_popup_message(update: Update, text: str) -> None:
    """Show a short notice on top of the chat."""
    if update.callback_query:
        await update.callback_query.answer(text=text, show_alert=True)
    else:
        await update.message.reply_text(f"⚠️ {text}")


def menu_keyboard(session: PracticeSession) -> List[List[InlineKeyboardButton]]:
    return [
        [InlineKeyboardButton(ADD_WORD, callback_data="add_word"),
         InlineKeyboardButton(PRACTICE, callback_data="practice")],
        [InlineKeyboardButton(VIEW_STATISTICS, callback_data="stats"),
         InlineKeyboardButton(sound_label(session.sound_enabled), callback_data="sound")],
    ]


def practice_keyboard() -> List[List[InlineKeyboardButton]]:
    return [
        [InlineKeyboardButton(TALK, callback_data="talk"),
         InlineKeyboardButton(REVEAL, callback_data="reveal")],
        [InlineKeyboardButton(msg_back_to(MENU), callback_data="back_to_menu")],
    ]


def format_prompt(prompt: PracticePrompt) -> str:
    text = f"<code>{escape(prompt.prompt_text)}</code>"
    if prompt.feedback_text:
        text += f"\n\n{escape(prompt.feedback_text)}"
    return text


async def show_menu(update: Update, context: CallbackContext, session: PracticeSession, notice: str = "") -> int:
    controller = get_controller(context, update.effective_chat.id)
    text = f"<b>{escape(session.user_id)}</b>\n{controller.progress_summary(session)}"
    if notice:
        text = f"{escape(notice, quote=False)}\n\n{text}"
    await reply(update, text, menu_keyboard(session))
    return MAIN_MENU


async def open_session(update: Update, context: CallbackContext, user_id: str) -> PracticeSession:
    """Replace the chat's session with a fresh one for user_id."""
    chat_id = update.effective_chat.id
    registry = get_registry(context)
    controller = get_controller(context, chat_id)
    previous = registry.get(chat_id)
    if previous:
        controller.close_session(previous)
    session = controller.open_session(user_id)
    registry.put(chat_id, session)
    return session


async def handle_start(update: Update, context: CallbackContext) -> int:
    """Open a session for the logged-in user, or for the Telegram account."""
    await log_received(update, "start")
    chat_key = str(update.effective_chat.id)
    try:
        user_id = UserService(get_store(context)).current_user(chat_key)
        if not user_id:
            user_id = update.effective_user.username or str(update.effective_user.id)
        session = await open_session(update, context, user_id)
    except PersistenceError as e:
        return await handle_storage_error(update, e)
    return await show_menu(update, context, session)


async def handle_login(update: Update, context: CallbackContext) -> int:
    """/login <username> <password>: switch to another catalogue."""
    await log_received(update, "login")
    args = context.args or []
    username = args[0] if len(args) > 0 else ""
    password = args[1] if len(args) > 1 else ""
    try:
        user_id = UserService(get_store(context)).login(str(update.effective_chat.id), username, password)
        session = await open_session(update, context, user_id)
    except ValidationError as e:
        await update.message.reply_text(e.message)
        # Stay in the running conversation, if any
        session = get_registry(context).get(update.effective_chat.id)
        if not session:
            return ConversationHandler.END
        return PRACTICING if session.current_round else MAIN_MENU
    except PersistenceError as e:
        return await handle_storage_error(update, e)
    return await show_menu(update, context, session)


async def handle_logout(update: Update, context: CallbackContext) -> int:
    """/logout: forget the user and end any practice."""
    await log_received(update, "logout")
    chat_id = update.effective_chat.id
    try:
        UserService(get_store(context)).logout(str(chat_id))
    except PersistenceError as e:
        return await handle_storage_error(update, e)
    session = get_registry(context).pop(chat_id)
    if session:
        get_controller(context, chat_id).close_session(session)
    await update.message.reply_text(MSG_LOGGED_OUT)
    return ConversationHandler.END


async def handle_callback(update: Update, context: CallbackContext) -> int:
    """Handle menu and practice buttons."""
    await log_received(update, "callback")
    chat_id = update.effective_chat.id
    session = get_registry(context).get(chat_id)
    if not session:
        await reply(update, MSG_NOT_LOGGED_IN)
        return ConversationHandler.END

    controller = get_controller(context, chat_id)
    action = update.callback_query.data
    try:
        if action == "add_word":
            await reply(update, MSG_ADD_WORD, [[InlineKeyboardButton(msg_back_to(MENU), callback_data="back_to_menu")]])
            return ADDING_WORDS
        if action == "practice":
            prompt = controller.start_practice(session)
            await reply(update, format_prompt(prompt), practice_keyboard())
            return PRACTICING
        if action == "stats":
            await reply(update, controller.statistics(session), [[InlineKeyboardButton(msg_back_to(MENU), callback_data="back_to_menu")]])
            return MAIN_MENU
        if action == "sound":
            controller.toggle_sound(session)
            return await show_menu(update, context, session)
        if action == "talk":
            controller.talk(session)
            await update.callback_query.answer()
            return PRACTICING
        if action == "reveal":
            return await handle_reveal(update, context, controller, session)
        if action == "back_to_menu":
            controller.end_round(session)
            return await show_menu(update, context, session)
    except ValidationError as e:
        await send_popup_message(update, e.message)
        return PRACTICING if session.current_round else MAIN_MENU
    except PersistenceError as e:
        return await handle_storage_error(update, e)

    logger.warning(f"Unknown callback data: {action}")
    await update.callback_query.answer()
    return MAIN_MENU


async def handle_add_word(update: Update, context: CallbackContext) -> int:
    """Add the typed word to the catalogue."""
    await log_received(update, "add")
    session = get_registry(context).get(update.effective_chat.id)
    if not session:
        await update.message.reply_text(MSG_NOT_LOGGED_IN)
        return ConversationHandler.END

    controller = get_controller(context, update.effective_chat.id)
    try:
        notice = controller.add_word(session, update.message.text)
    except ValidationError as e:
        await update.message.reply_text(e.message)
        return ADDING_WORDS
    except PersistenceError as e:
        return await handle_storage_error(update, e)
    return await show_menu(update, context, session, notice)


async def handle_submission(update: Update, context: CallbackContext) -> int:
    """Score a typed spelling."""
    await log_received(update, "learn")
    chat_id = update.effective_chat.id
    session = get_registry(context).get(chat_id)
    if not session:
        await update.message.reply_text(MSG_NOT_LOGGED_IN)
        return ConversationHandler.END
    if session.current_round is None:
        await update.message.reply_text(MSG_START_PRACTICE)
        return MAIN_MENU

    controller = get_controller(context, chat_id)
    try:
        prompt = controller.submit(session, update.message.text)
    except ValidationError as e:
        await update.message.reply_text(e.message)
        return PRACTICING
    except PersistenceError as e:
        return await handle_storage_error(update, e)

    await update.message.reply_text(format_prompt(prompt), reply_markup=InlineKeyboardMarkup(practice_keyboard()), parse_mode="HTML")
    if prompt.correct:
        schedule(advance_later(update, controller, session, prompt.round_id))
    return PRACTICING


async def handle_reveal(update: Update, context: CallbackContext, controller: SessionController, session: PracticeSession) -> int:
    """Show the word for a few seconds when sound is off."""
    prompt = controller.reveal(session)
    if prompt is None:
        await send_popup_message(update, MSG_REVEAL_NEEDS_SOUND_OFF)
        return PRACTICING
    await reply(update, format_prompt(prompt), practice_keyboard())
    schedule(hide_later(update, controller, session, prompt.round_id))
    return PRACTICING


_scheduled: Set[asyncio.Task] = set()


def schedule(coro) -> asyncio.Task:
    """Run coro in the background, keeping a reference until it finishes."""
    task = asyncio.get_running_loop().create_task(coro)
    _scheduled.add(task)
    task.add_done_callback(_scheduled.discard)
    return task


async def advance_later(update: Update, controller: SessionController, session: PracticeSession, round_id: int) -> None:
    """Start the next round after a short pause, unless the round changed meanwhile."""
    await asyncio.sleep(settings.practice.advance_delay)
    prompt = controller.advance(session, round_id)
    if prompt is None:
        return
    try:
        await update.effective_chat.send_message(format_prompt(prompt), reply_markup=InlineKeyboardMarkup(practice_keyboard()), parse_mode="HTML")
    except TelegramError as e:
        logger.error(f"Error sending next word: {e}")


async def hide_later(update: Update, controller: SessionController, session: PracticeSession, round_id: int) -> None:
    """Cover the revealed word again."""
    await asyncio.sleep(settings.practice.reveal_seconds)
    prompt = controller.hide(session, round_id)
    if prompt is None:
        return
    try:
        await update.callback_query.edit_message_text(format_prompt(prompt), reply_markup=InlineKeyboardMarkup(practice_keyboard()), parse_mode="HTML")
    except TelegramError as e:
        logger.warning(f"Error hiding word: {e}")


async def handle_storage_error(update: Update, error: PersistenceError) -> int:
    logger.error(f"Storage failure: {error}")
    monitoring.error_count.labels(error_type="persistence").inc()
    if update.callback_query:
        await update.callback_query.answer(text=MSG_STORAGE_FAILED, show_alert=True)
    else:
        await update.message.reply_text(MSG_STORAGE_FAILED)
    return MAIN_MENU
