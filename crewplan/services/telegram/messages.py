"""
Message text sent to employees through the bot (HTML parse mode).
"""

from datetime import date, time
from html import escape
from typing import Optional

from crewplan.services.scheduling.periods import MONTH_NAMES


DEFAULT_RESPONSIBLE_NAME = "Administrator"
DEFAULT_BRANCH_NAME = "Not specified"


def format_shift_date(value: date) -> str:
    return f"{value.day} {MONTH_NAMES[value.month - 1]} {value.year}"


def format_shift_window(start: time, end: time) -> str:
    return f"{start:%H:%M} - {end:%H:%M}"


def no_show_decision_title(approved: bool) -> str:
    return "Reason approved" if approved else "Reason rejected"


def no_show_decision_message(
    approved: bool,
    shift_date: date,
    start: time,
    end: time,
    reason: Optional[str],
    responsible_name: Optional[str],
) -> str:
    responsible = escape(responsible_name or DEFAULT_RESPONSIBLE_NAME)
    verdict = "approved" if approved else "rejected"
    text = (
        f"<b>{no_show_decision_title(approved)}</b>\n\n"
        f"Your reason for missing the shift was {verdict}.\n\n"
        f"<b>Shift:</b> {format_shift_date(shift_date)}, {format_shift_window(start, end)}\n"
        f"<b>Reason:</b> {escape(reason or '')}\n"
        f"<b>Responsible:</b> {responsible}"
    )
    if not approved:
        text += "\n\nPlease contact your manager for details."
    return text


def no_show_decision_log_message(approved: bool, responsible_name: Optional[str]) -> str:
    responsible = responsible_name or DEFAULT_RESPONSIBLE_NAME
    if approved:
        return f"Your reason for missing the shift was approved by {responsible}"
    return f"Your reason for missing the shift was rejected by {responsible}. Please contact your manager for details."


def no_show_notice(branch_name: Optional[str], start: time) -> str:
    return (
        "<b>You did not start your shift</b>\n\n"
        f"Branch: {escape(branch_name or DEFAULT_BRANCH_NAME)}\n"
        f"Start time: {start:%H:%M}\n\n"
        "Please tell us the reason in your cabinet"
    )


def reminder_before_message(branch_name: Optional[str], start: time, comment: Optional[str] = None) -> str:
    text = (
        "<b>Reminder: you have a shift</b>\n\n"
        f"Branch: {escape(branch_name or DEFAULT_BRANCH_NAME)}\n"
        f"Start time: {start:%H:%M}\n\n"
        "Don't forget to open the shift in your cabinet on time"
    )
    if comment:
        text += f"\n\n{escape(comment)}"
    return text


def reminder_late_message(branch_name: Optional[str], start: time) -> str:
    return (
        "<b>Shift not opened</b>\n\n"
        f"Branch: {escape(branch_name or DEFAULT_BRANCH_NAME)}\n"
        f"Start time: {start:%H:%M}\n\n"
        "Please open the shift in your cabinet as soon as possible"
    )


def close_reminder_message(branch_name: Optional[str], end: time) -> str:
    return (
        "<b>Shift finished by schedule</b>\n\n"
        "Please don't forget to close the shift.\n\n"
        f"Branch: {escape(branch_name or DEFAULT_BRANCH_NAME)}\n"
        f"Scheduled end: {end:%H:%M}"
    )
