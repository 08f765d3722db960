"""
Weekly Report Service - summary generation, email rendering and scheduled dispatch
"""
from datetime import date, datetime, timedelta
from html import escape
from typing import Any, Callable, Dict, List, Optional, Sequence
import logging

from habit_arc.core.config import settings
from habit_arc.core.constants import NEW_STREAK_MIN_DAYS, STRUGGLING_THRESHOLD, TOP_PERFORMING_THRESHOLD
from habit_arc.core.exceptions import InvalidRequestError
from habit_arc.models.habit import Habit, Identity
from habit_arc.models.notifications import UserPrefs
from habit_arc.models.reports import (
    EmailTemplate,
    HabitSummary,
    IdentityProgress,
    IdentitySummary,
    WeeklyReport
)
from habit_arc.services.habits.progress import calculate_habit_stats
from habit_arc.utils.timezone import get_local_now, get_utc_now

logger = logging.getLogger(__name__)

MAX_HIGHLIGHTED_HABITS = 3


def get_week_start(day: date) -> date:
    """Monday of the week containing day"""
    return day - timedelta(days=day.weekday())


# ============================================================================
# REPORT GENERATION
# ============================================================================

def generate_insights(completion_rate: float, top_performing: Sequence[Habit], struggling: Sequence[Habit],
                      new_streaks: int, broken_streaks: int) -> List[str]:
    """Short observations about the week, most general first"""
    insights = []
    if completion_rate >= 80:
        insights.append("🎉 Excellent week! You kept an outstanding success rate.")
    elif completion_rate >= 60:
        insights.append("👍 Good work this week! You're on the right track.")
    elif completion_rate >= 40:
        insights.append("💪 Keep going! Every small step counts.")
    else:
        insights.append("🌱 This week was hard, and that's normal. Focus on 1-2 important habits.")

    if top_performing:
        insights.append(f"⭐ Your best habits: {', '.join(h.name for h in top_performing)}")
    if struggling:
        insights.append(f"🎯 Habits to improve: {', '.join(h.name for h in struggling)}")
    if new_streaks > 0:
        insights.append(f"🔥 {new_streaks} streak(s) in progress!")
    if broken_streaks > 0:
        insights.append(f"💔 {broken_streaks} broken streak(s) this week. Don't panic, start again!")
    return insights


def generate_next_week_goals(struggling: Sequence[Habit], completion_rate: float, new_streaks: int) -> List[str]:
    goals = []
    if completion_rate < 50:
        goals.extend(["Focus on 1-2 essential habits", "Reduce the complexity of your habits"])
    elif completion_rate < 80:
        goals.extend(["Maintain your current habits", "Add 1 new simple habit"])
    else:
        goals.extend(["Consolidate your existing habits", "Explore new challenges"])

    if struggling:
        goals.append(f"Improve: {struggling[0].name}")
    if new_streaks > 0:
        goals.append("Keep your current streaks going")
    return goals


def generate_weekly_report(identities: Sequence[Identity], habits: Sequence[Habit],
                           week_start: Optional[date] = None) -> WeeklyReport:
    """
    Summarize a user's habits for one week

    Args:
        identities: The user's identities
        habits: The user's habits
        week_start: Monday of the reported week, defaults to the current week

    Returns:
        WeeklyReport with totals, highlights, identity progress, insights and goals
    """
    week_start = week_start or get_week_start(get_utc_now().date())
    stats = [(habit, calculate_habit_stats(habit)) for habit in habits]

    total = len(habits)
    completed = sum(1 for _, s in stats if s.percentage > 0)
    completion_rate = completed / total * 100 if total else 0.0

    top_performing = [
        h for h, s in sorted(stats, key=lambda pair: pair[1].percentage, reverse=True)
        if s.percentage >= TOP_PERFORMING_THRESHOLD
    ][:MAX_HIGHLIGHTED_HABITS]
    struggling = [
        h for h, s in sorted(stats, key=lambda pair: pair[1].percentage)
        if s.percentage < STRUGGLING_THRESHOLD
    ][:MAX_HIGHLIGHTED_HABITS]

    new_streaks = sum(1 for _, s in stats if s.current_streak >= NEW_STREAK_MIN_DAYS)
    broken_streaks = sum(1 for _, s in stats if s.current_streak == 0 and s.longest_streak > 0)

    identity_progress = []
    for identity in identities:
        linked = [s for h, s in stats if identity.id in h.linked_identities]
        rate = sum(s.percentage for s in linked) / len(linked) if linked else 0.0
        identity_progress.append(IdentityProgress(identity=identity, habits_count=len(linked), completion_rate=rate))

    return WeeklyReport(
        week_start=week_start,
        week_end=week_start + timedelta(days=6),
        habits=HabitSummary(
            total=total,
            completed=completed,
            completion_rate=completion_rate,
            top_performing=top_performing,
            struggling=struggling,
            new_streaks=new_streaks,
            broken_streaks=broken_streaks,
        ),
        identities=IdentitySummary(
            total=len(identities),
            active=sum(1 for p in identity_progress if p.habits_count > 0),
            progress=identity_progress,
        ),
        insights=generate_insights(completion_rate, top_performing, struggling, new_streaks, broken_streaks),
        next_week_goals=generate_next_week_goals(struggling, completion_rate, new_streaks),
    )


# ============================================================================
# EMAIL RENDERING
# ============================================================================

EMAIL_STYLE = """
        body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; margin: 0; padding: 20px; background-color: #f8fafc; }
        .container { max-width: 600px; margin: 0 auto; background: white; border-radius: 12px; overflow: hidden; }
        .header { background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white; padding: 30px; text-align: center; }
        .content { padding: 30px; }
        .section { margin-bottom: 30px; }
        .section h2 { color: #2d3748; font-size: 20px; border-bottom: 2px solid #e2e8f0; padding-bottom: 10px; }
        .stat-card { display: inline-block; background: #f7fafc; padding: 20px; margin: 5px; border-radius: 8px; text-align: center; border-left: 4px solid #667eea; }
        .stat-number { font-size: 32px; font-weight: bold; color: #2d3748; }
        .stat-label { color: #718096; font-size: 14px; }
        .habit-item { padding: 8px 0; border-bottom: 1px solid #e2e8f0; }
        .insight { background: #ebf8ff; padding: 15px; border-radius: 8px; margin: 10px 0; border-left: 4px solid #3182ce; }
        .goal { background: #fef5e7; padding: 15px; border-radius: 8px; margin: 10px 0; border-left: 4px solid #ed8936; }
        .footer { background: #f7fafc; padding: 20px; text-align: center; color: #718096; font-size: 14px; }
"""


def _format_date(day: date) -> str:
    return day.strftime("%d/%m/%Y")


def _stat_card(number: Any, label: str) -> str:
    return (
        f'<div class="stat-card"><div class="stat-number">{escape(str(number))}</div>'
        f'<div class="stat-label">{escape(label)}</div></div>'
    )


def _section(title: str, body: str) -> str:
    return f'<div class="section"><h2>{escape(title)}</h2>{body}</div>'


def generate_weekly_email_template(report: WeeklyReport) -> EmailTemplate:
    """
    Render the weekly report as an HTML + plain-text email

    Every user-supplied string is HTML-escaped in the HTML part.
    """
    start, end = _format_date(report.week_start), _format_date(report.week_end)
    rate = f"{report.habits.completion_rate:.0f}%"
    subject = f"📊 Habit Arc weekly summary - Week of {start}"

    sections = [_section("📈 Overview", "".join([
        _stat_card(rate, "Success rate"),
        _stat_card(f"{report.habits.completed}/{report.habits.total}", "Active habits"),
        _stat_card(report.habits.new_streaks, "Streaks in progress"),
    ]))]
    if report.habits.top_performing:
        sections.append(_section("⭐ Top performers", "".join(
            f'<div class="habit-item"><strong>{escape(h.name)}</strong> - great progress this week!</div>'
            for h in report.habits.top_performing
        )))
    if report.habits.struggling:
        sections.append(_section("🎯 Habits to improve", "".join(
            f'<div class="habit-item"><strong>{escape(h.name)}</strong> - focus on this one next week</div>'
            for h in report.habits.struggling
        )))
    sections.append(_section("👤 Identity progress", "".join([
        _stat_card(report.identities.active, "Active identities"),
        _stat_card(report.identities.total, "Total identities"),
    ])))
    if report.insights:
        sections.append(_section("💡 Insights of the week", "".join(
            f'<div class="insight">{escape(insight)}</div>' for insight in report.insights
        )))
    if report.next_week_goals:
        sections.append(_section("🎯 Goals for next week", "".join(
            f'<div class="goal">• {escape(goal)}</div>' for goal in report.next_week_goals
        )))

    html = f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Habit Arc weekly summary</title>
    <style>{EMAIL_STYLE}</style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>📊 Weekly Summary</h1>
            <p>Week of {start} to {end}</p>
        </div>
        <div class="content">
            {"".join(sections)}
        </div>
        <div class="footer">
            <p>Keep building the person you want to become with Habit Arc!</p>
            <p><a href="{escape(settings.APP_URL)}">Open Habit Arc</a></p>
            <p>You receive this email because weekly summaries are enabled.</p>
        </div>
    </div>
</body>
</html>"""

    text_lines = [
        "HABIT ARC WEEKLY SUMMARY",
        f"Week of {start} to {end}",
        "",
        "📈 OVERVIEW",
        f"- Success rate: {rate}",
        f"- Active habits: {report.habits.completed}/{report.habits.total}",
        f"- Streaks in progress: {report.habits.new_streaks}",
    ]
    if report.habits.top_performing:
        text_lines += ["", "⭐ TOP PERFORMERS"] + [f"- {h.name}" for h in report.habits.top_performing]
    if report.habits.struggling:
        text_lines += ["", "🎯 HABITS TO IMPROVE"] + [f"- {h.name}" for h in report.habits.struggling]
    text_lines += [
        "",
        "👤 IDENTITIES",
        f"- Active identities: {report.identities.active}",
        f"- Total identities: {report.identities.total}",
    ]
    if report.insights:
        text_lines += ["", "💡 INSIGHTS OF THE WEEK"] + [f"- {i}" for i in report.insights]
    if report.next_week_goals:
        text_lines += ["", "🎯 GOALS FOR NEXT WEEK"] + [f"- {g}" for g in report.next_week_goals]
    text_lines += ["", "Keep building the person you want to become with Habit Arc!", settings.APP_URL]

    return EmailTemplate(subject=subject, html=html, text="\n".join(text_lines))


# ============================================================================
# DELIVERY
# ============================================================================

def send_weekly_email(report: WeeklyReport, to_email: str, sender) -> str:
    """
    Render and send one weekly summary

    Returns:
        Provider message id

    Raises:
        InvalidRequestError: If there is no recipient address
        ExternalServiceError: If the email provider rejects the message
    """
    if not to_email:
        raise InvalidRequestError("No email address for this user")
    template = generate_weekly_email_template(report)
    return sender.send(to_email, template.subject, template.html, template.text)


def is_weekly_email_due(prefs: UserPrefs, now: datetime) -> bool:
    """True when the user's local weekday and hour match their weekly email slot"""
    if not prefs.weekly_email_enabled:
        return False
    local = get_local_now(prefs.notif_timezone, now)
    # weekly_email_day counts from Sunday = 0
    weekday = (local.weekday() + 1) % 7
    return weekday == prefs.weekly_email_day and local.hour == prefs.weekly_email_hour


def send_weekly_summaries(repository, sender, store_factory: Callable[[str], Any],
                          now: Optional[datetime] = None) -> Dict[str, int]:
    """
    Send the weekly summary to every user whose slot is now

    Args:
        repository: SupabaseRepository (or compatible)
        sender: EmailSender
        store_factory: Builds the HabitStore of a user id
        now: Reference instant, defaults to the current time

    Returns:
        Counters {checked, sent, failed}
    """
    now = now or get_utc_now()
    counters = {"checked": 0, "sent": 0, "failed": 0}

    for row in repository.list_weekly_email_prefs():
        counters["checked"] += 1
        user_id = row["user_id"]
        prefs = UserPrefs.from_row(row)
        if not is_weekly_email_due(prefs, now):
            continue

        try:
            store = store_factory(user_id)
            local_today = get_local_now(prefs.notif_timezone, now).date()
            report = generate_weekly_report(
                store.list_identities(),
                store.list_habits(),
                week_start=get_week_start(local_today)
            )
            send_weekly_email(report, repository.get_user_email(user_id), sender)
            counters["sent"] += 1
            logger.info(f"[WEEKLY EMAIL] Sent summary to {user_id}")
        except Exception as e:
            counters["failed"] += 1
            logger.error(f"[WEEKLY EMAIL] Failed for {user_id}: {e}", exc_info=True)

    logger.info(f"[WEEKLY EMAIL] {counters}")
    return counters
