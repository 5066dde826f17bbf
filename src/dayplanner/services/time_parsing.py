"""Deterministic extraction of times, durations and cues from user messages.

The event and goal processors use these to override or fill in what the
model returns, so the same message always yields the same start time,
duration, energy and importance.
"""
import calendar as cal_module
import math
import re
from datetime import datetime, timedelta
from typing import Optional, Tuple

from dayplanner.models.domain import EnergyType


SLOT_MINUTES = 15

_WORD_NUMBERS = {
    "a": 1, "an": 1, "one": 1, "two": 2, "three": 3, "four": 4,
    "five": 5, "six": 6, "ten": 10, "fifteen": 15, "twenty": 20,
    "thirty": 30, "forty-five": 45, "ninety": 90,
}

# Digits may touch their unit ("45m", "45-minute"); spelled-out numbers need a
# separate, whole-word unit so "I am" never reads as "a m".
_DIGITS = r"(\d+(?:\.\d+)?)"
_WORDS = r"(an?|one|two|three|four|five|six|ten|fifteen|twenty|thirty|forty-five|ninety)"
_HOUR_UNIT = r"(?:hours?|hrs?|h)"
_MINUTE_UNIT = r"(?:minutes?|mins?|m)"
_WORD_HOUR_UNIT = r"(?:hours?|hrs?)"
_WORD_MINUTE_UNIT = r"(?:minutes?|mins?)"
_AMOUNT = (
    rf"(?:{_DIGITS}[\s-]*({_HOUR_UNIT}|{_MINUTE_UNIT})"
    rf"|{_WORDS}[\s-]+({_WORD_HOUR_UNIT}|{_WORD_MINUTE_UNIT}))"
)

_RELATIVE_HALF_HOUR_RE = re.compile(r"\bin\s+half\s+an\s+hour\b")
_RELATIVE_IN_RE = re.compile(rf"\bin\s+{_AMOUNT}\b")
_RELATIVE_FROM_NOW_RE = re.compile(rf"\b{_AMOUNT}\s+from\s+now\b")

_CLOCK_AT_RE = re.compile(r"\bat\s+(\d{1,2})(?::(\d{2}))?\s*(am|pm|a\.m\.|p\.m\.)?(?![\w:])")
_CLOCK_MERIDIEM_RE = re.compile(r"\b(\d{1,2})(?::(\d{2}))?\s*(am|pm|a\.m\.|p\.m\.)(?!\w)")
_CLOCK_24H_RE = re.compile(r"\b([01]?\d|2[0-3]):([0-5]\d)\b")

_HOURS_RE = re.compile(rf"\b(?:{_DIGITS}[\s-]*{_HOUR_UNIT}|{_WORDS}[\s-]+{_WORD_HOUR_UNIT})\b")
_MINUTES_RE = re.compile(rf"\b(?:{_DIGITS}[\s-]*{_MINUTE_UNIT}|{_WORDS}[\s-]+{_WORD_MINUTE_UNIT})\b")
_COMPACT_RE = re.compile(r"\b(\d+)h\s?(\d{1,2})m?\b")
_NOW_RE = re.compile(r"(?<!\bnot\s)\b(?:right\s+)?now\b")

_PERIOD_HOURS = {
    "this morning": 9,
    "this afternoon": 14,
    "this evening": 18,
    "tonight": 20,
}

# Checked in order; first family with a hit wins.
_ENERGY_KEYWORDS = (
    (EnergyType.SUNRISE, (
        "workout", "work out", "exercise", "gym", "run", "running", "jog", "swim",
        "hike", "lift", "training", "cardio", "deep work", "focus", "study",
        "important", "presentation", "interview", "exam", "critical",
    )),
    (EnergyType.MOONLIGHT, (
        "rest", "relax", "nap", "break", "wind down", "wind-down", "meditate",
        "meditation", "read", "reading", "sleep", "bath", "stretch", "journal",
        "movie", "tv", "unwind", "calm",
    )),
    (EnergyType.DAYLIGHT, (
        "meeting", "email", "call", "work", "errand", "admin", "lunch", "review",
        "plan", "chores", "shopping",
    )),
)

_IMPORTANCE_CUES = (
    (5, ("critical", "urgent", "essential", "must")),
    (4, ("important", "priority")),
    (2, ("nice to", "would like", "someday", "maybe")),
    (3, ("want", "should", "hope")),
)


def _to_number(token: str) -> float:
    token = token.lower()
    if token in _WORD_NUMBERS:
        return float(_WORD_NUMBERS[token])
    return float(token)


def _matched_number(match: re.Match) -> float:
    """Number from a digit-or-word alternation; the first filled group wins."""
    return _to_number(next(group for group in match.groups() if group is not None))


def _relative_match(text: str) -> Optional[re.Match]:
    return _RELATIVE_IN_RE.search(text) or _RELATIVE_FROM_NOW_RE.search(text)


def _contains(text: str, phrase: str) -> bool:
    return re.search(rf"\b{re.escape(phrase)}\b", text) is not None


def round_to_slot(moment: datetime, minutes: int = SLOT_MINUTES) -> datetime:
    """Round a datetime up to the next slot boundary."""
    moment = moment.replace(second=0, microsecond=0)
    remainder = moment.minute % minutes
    if remainder == 0:
        return moment
    return moment + timedelta(minutes=minutes - remainder)


def next_available_slot(now: datetime) -> datetime:
    """First slot boundary strictly after ``now``."""
    candidate = round_to_slot(now)
    if candidate <= now:
        candidate += timedelta(minutes=SLOT_MINUTES)
    return candidate


class TimeExtractor:
    """Regex-based parsing of scheduling phrases."""

    def extract_clock_time(self, message: str) -> Optional[Tuple[int, int]]:
        """Find an explicit clock time such as "at 3pm", "7:30am" or "at 15:00"."""
        text = message.lower()

        if _contains(text, "noon") or _contains(text, "midday"):
            return 12, 0
        if _contains(text, "midnight"):
            return 0, 0

        match = _CLOCK_MERIDIEM_RE.search(text) or _CLOCK_AT_RE.search(text)
        if match:
            hour = int(match.group(1))
            minute = int(match.group(2) or 0)
            meridiem = (match.group(3) or "").replace(".", "")
            if hour > 23 or minute > 59:
                return None
            if meridiem == "pm" and hour != 12:
                hour += 12
            elif meridiem == "am" and hour == 12:
                hour = 0
            elif not meridiem and 1 <= hour <= 6:
                # "at 3" almost always means the afternoon
                hour += 12
            return hour, minute

        match = _CLOCK_24H_RE.search(text)
        if match:
            return int(match.group(1)), int(match.group(2))
        return None

    def extract_day_offset(self, message: str, now: datetime) -> Optional[int]:
        """Days from ``now`` implied by "today", "tomorrow" or a weekday name."""
        text = message.lower()
        if "day after tomorrow" in text:
            return 2
        if _contains(text, "tomorrow"):
            return 1
        if _contains(text, "today") or _contains(text, "tonight"):
            return 0
        for index, day_name in enumerate(cal_module.day_name):
            if _contains(text, day_name.lower()):
                days_ahead = index - now.weekday()
                if days_ahead <= 0:
                    days_ahead += 7
                return days_ahead
        return None

    def extract_relative_offset(self, message: str) -> Optional[timedelta]:
        """Offset for phrases like "in 1 hour", "20 minutes from now", "in half an hour"."""
        text = message.lower()
        if _RELATIVE_HALF_HOUR_RE.search(text):
            return timedelta(minutes=30)
        match = _relative_match(text)
        if not match:
            return None
        amount = _matched_number(match)
        unit = match.group(2) or match.group(4)
        if unit.startswith("h"):
            return timedelta(hours=amount)
        return timedelta(minutes=amount)

    def extract_start_time(self, message: str, now: datetime) -> Optional[datetime]:
        """
        Resolve the start time a message asks for.

        Relative offsets and clock times take precedence; a bare "now" only
        applies when neither is present.

        Args:
            message: Raw user message
            now: Current time; the result shares its tzinfo

        Returns:
            Start datetime, or None when the message names no time at all
        """
        text = message.lower()

        relative = self.extract_relative_offset(text)
        if relative is not None:
            return round_to_slot(now + relative)

        clock = self.extract_clock_time(text)
        day_offset = self.extract_day_offset(text, now)

        from_period = False
        if clock is None:
            for phrase, hour in _PERIOD_HOURS.items():
                if phrase in text:
                    clock = (hour, 0)
                    from_period = True
                    break

        if clock is None and day_offset is None:
            if _NOW_RE.search(text):
                return next_available_slot(now)
            return None

        hour, minute = clock if clock is not None else (9, 0)
        base = now + timedelta(days=day_offset or 0)
        start = base.replace(hour=hour, minute=minute, second=0, microsecond=0)

        # "tonight" at 21:00 still means tonight
        if from_period and not day_offset and start <= now:
            return next_available_slot(now)
        # A bare clock time that already passed today means the next occurrence
        if day_offset is None and start <= now:
            start += timedelta(days=1)
        return start

    def extract_duration(self, message: str) -> Optional[int]:
        """Duration in seconds from phrases like "for 45 minutes", "a 45-minute run" or "1.5 hours"."""
        # "in 2 hours" is a start offset and "7 am" a clock time, not durations
        text = _RELATIVE_HALF_HOUR_RE.sub(" ", message.lower())
        text = _RELATIVE_IN_RE.sub(" ", text)
        text = _RELATIVE_FROM_NOW_RE.sub(" ", text)
        text = _CLOCK_MERIDIEM_RE.sub(" ", text)

        if "half an hour" in text or "half hour" in text:
            return 30 * 60
        if "hour and a half" in text:
            return 90 * 60

        compact = _COMPACT_RE.search(text)
        if compact:
            return int(compact.group(1)) * 3600 + int(compact.group(2)) * 60

        seconds = 0.0
        hours = _HOURS_RE.search(text)
        if hours:
            seconds += _matched_number(hours) * 3600
        minutes = _MINUTES_RE.search(text)
        if minutes:
            seconds += _matched_number(minutes) * 60
        if seconds <= 0:
            return None
        return int(seconds)

    def infer_energy(self, text: str) -> Optional[EnergyType]:
        """Map activity keywords to an energy level; None when nothing matches."""
        lowered = text.lower()
        for energy, keywords in _ENERGY_KEYWORDS:
            if any(_contains(lowered, keyword) for keyword in keywords):
                return energy
        return None

    def importance_from_text(self, text: str) -> int:
        """Goal importance 1-5 from urgency wording, 3 when no cue is present."""
        lowered = text.lower()
        for importance, cues in _IMPORTANCE_CUES:
            if any(_contains(lowered, cue) for cue in cues):
                return importance
        return 3


def clamp(value: float, low: float, high: float) -> float:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return low
    return max(low, min(high, value))


def parse_iso_datetime(value, reference: datetime) -> Optional[datetime]:
    """
    Parse an ISO-8601 string from model output.

    The result is expressed in ``reference``'s timezone: naive strings are
    taken as local, aware ones are converted. Returns None for anything
    unparseable.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if reference.tzinfo is None:
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone().replace(tzinfo=None)
        return parsed
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=reference.tzinfo)
    return parsed.astimezone(reference.tzinfo)


# Singleton instance
time_extractor = TimeExtractor()
