"""Telegram command handlers."""

import asyncio
import logging

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.ext import ContextTypes, ConversationHandler

from .config import load_config
from .core.errors import ApplicationInProgressError, PlanError, StoreError
from .core.report import format_plan, format_result
from .engine import PlanApplicationEngine
from .telegram_format import send_markdown
from .telegram_states import OrganizeStates
from .workflows import analyze_workspace, apply_plan, create_engine

logger = logging.getLogger(__name__)


# ============== Simple Commands ==============


async def start_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /start command."""
    await update.message.reply_text(
        "Hey! I'm Tidy. I sort your notes into the right lists.\n\n"
        "Commands:\n"
        "/organize - Suggest a reorganization and apply it\n"
        "/help - Show all commands"
    )


async def help_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /help command."""
    await update.message.reply_text(
        "*Tidy Commands*\n\n"
        "/organize - Analyze your lists, review the plan, then apply\n"
        "/cancel - Cancel current operation\n",
        parse_mode="Markdown",
    )


# ============== Organize Conversation ==============


def _engine_for(context: ContextTypes.DEFAULT_TYPE, config) -> PlanApplicationEngine:
    """One engine per workspace, shared across users of the bot."""
    engines = context.bot_data.setdefault("engines", {})
    key = (config.author_id, config.couple_id)
    if key not in engines:
        engines[key] = create_engine(config)
    return engines[key]


async def organize_start_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Start the organize conversation: analyze and show the plan."""
    config = load_config()
    await update.message.reply_text("Looking through your lists...")

    try:
        engine = _engine_for(context, config)
    except ValueError as e:
        await update.message.reply_text(f"Configuration error: {e}")
        return ConversationHandler.END

    try:
        engine.begin_analysis()
    except ApplicationInProgressError:
        await update.message.reply_text("Already applying a plan for this workspace. Try again shortly.")
        return ConversationHandler.END

    try:
        plan = await asyncio.to_thread(analyze_workspace, config)
    except (PlanError, StoreError, RuntimeError, ValueError) as e:
        logger.error(f"Organize analysis failed: {e}")
        engine.analysis_failed()
        await update.message.reply_text(f"Couldn't analyze your lists: {e}")
        return ConversationHandler.END

    if plan.is_empty:
        engine.analysis_failed()
        await update.message.reply_text(plan.summary or "Nothing to organize.")
        return ConversationHandler.END

    engine.plan_ready(plan)
    context.user_data["organize_plan"] = plan
    keyboard = [
        [
            InlineKeyboardButton("Apply", callback_data="organize_apply"),
            InlineKeyboardButton("Cancel", callback_data="organize_cancel"),
        ]
    ]
    await send_markdown(update.message, format_plan(plan), reply_markup=InlineKeyboardMarkup(keyboard))
    return OrganizeStates.REVIEW


async def organize_review_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle the Apply / Cancel buttons."""
    query = update.callback_query
    await query.answer()
    await query.edit_message_reply_markup(reply_markup=None)

    plan = context.user_data.pop("organize_plan", None)
    if query.data != "organize_apply":
        await query.message.reply_text("Okay, left everything where it was.")
        return ConversationHandler.END
    if plan is None:
        await query.message.reply_text("That plan has expired. Run /organize again.")
        return ConversationHandler.END

    config = load_config()
    engine = _engine_for(context, config)
    applying = context.bot_data.setdefault("applying", set())
    key = (config.author_id, config.couple_id)
    if key in applying:
        await query.message.reply_text("Already applying a plan for this workspace. Try again shortly.")
        return ConversationHandler.END

    applying.add(key)
    try:
        result = await asyncio.to_thread(apply_plan, config, plan, engine)
    except (PlanError, ApplicationInProgressError) as e:
        await query.message.reply_text(f"Couldn't apply the plan: {e}")
        return ConversationHandler.END
    finally:
        applying.discard(key)

    await send_markdown(query.message, format_result(result))
    return ConversationHandler.END


async def organize_cancel_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /cancel during the organize conversation."""
    await update.message.reply_text("Organize cancelled.")
    return ConversationHandler.END
