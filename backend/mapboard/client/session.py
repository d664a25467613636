from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from mapboard.domain.models import Feature

logger = logging.getLogger(__name__)

THEMES = ("light", "dark")
LEADERBOARD_SIZE = 10

POPUPS_OPENED = "popups_opened"
ANALYSES_COMPLETED = "analyses_completed"
FILTERS_TOGGLED = "filters_toggled"
BOOKMARKS = "bookmarks"


@dataclass(frozen=True)
class Achievement:
    id: str
    title: str
    points: int
    condition: Callable[[Mapping[str, int]], bool]


@dataclass(frozen=True)
class DailyChallenge:
    id: str
    title: str
    counter: str
    target: int
    points: int


ACHIEVEMENTS: Sequence[Achievement] = (
    Achievement("first_popup", "Curious neighbour", 10, lambda c: c.get(POPUPS_OPENED, 0) >= 1),
    Achievement("first_analysis", "Map analyst", 20, lambda c: c.get(ANALYSES_COMPLETED, 0) >= 1),
    Achievement("filter_explorer", "Filter explorer", 15, lambda c: c.get(FILTERS_TOGGLED, 0) >= 5),
    Achievement("bookmark_collector", "Collector", 25, lambda c: c.get(BOOKMARKS, 0) >= 3),
    Achievement("spatial_expert", "Spatial expert", 50, lambda c: c.get(ANALYSES_COMPLETED, 0) >= 10),
)

DAILY_CHALLENGES: Sequence[DailyChallenge] = (
    DailyChallenge("open_three", "Open 3 listings", POPUPS_OPENED, 3, 15),
    DailyChallenge("run_two_analyses", "Run 2 spatial analyses", ANALYSES_COMPLETED, 2, 20),
    DailyChallenge("toggle_filters", "Toggle 4 category filters", FILTERS_TOGGLED, 4, 10),
)


def _default_state() -> Dict[str, Any]:
    return {
        "theme": "light",
        "points": 0,
        "achievements": [],
        "bookmarks": [],
        "counters": {},
        "leaderboard": [],
        "daily_challenge": None,
    }


class SessionStore:
    """Per-profile durable state kept in a JSON file.

    Loaded once with ``load()``; every mutation is flushed with ``save()``.
    Bookmarks are keyed by feature id and survive feature reloads.
    """

    def __init__(self, path: str | Path, *, achievements: Sequence[Achievement] = ACHIEVEMENTS):
        self.path = Path(path)
        self.achievements = achievements
        self.data: Dict[str, Any] = _default_state()

    def load(self) -> "SessionStore":
        self.data = _default_state()
        if not self.path.exists():
            return self
        try:
            stored = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, exc)
            return self
        if isinstance(stored, dict):
            self.data.update({key: stored[key] for key in self.data if key in stored})
        return self

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(self.data, indent=2, sort_keys=True), encoding="utf-8")
        os.replace(tmp_path, self.path)

    @property
    def points(self) -> int:
        return int(self.data["points"])

    @property
    def theme(self) -> str:
        return self.data["theme"]

    @property
    def unlocked(self) -> List[str]:
        return list(self.data["achievements"])

    def counters(self) -> Dict[str, int]:
        counters = dict(self.data["counters"])
        counters[BOOKMARKS] = len(self.data["bookmarks"])
        return counters

    def set_theme(self, theme: str) -> None:
        if theme not in THEMES:
            raise ValueError(f"theme must be one of {THEMES}")
        self.data["theme"] = theme
        self.save()

    def add_points(self, amount: int) -> int:
        self.data["points"] = self.points + amount
        self.save()
        return self.points

    def record(self, counter: str, amount: int = 1) -> List[Achievement]:
        """Bump ``counter`` and return the achievements it unlocked."""
        counters = self.data["counters"]
        counters[counter] = int(counters.get(counter, 0)) + amount
        self.save()
        return self.evaluate_achievements()

    def evaluate_achievements(self) -> List[Achievement]:
        counters = self.counters()
        unlocked = set(self.data["achievements"])
        newly: List[Achievement] = []
        for achievement in self.achievements:
            if achievement.id in unlocked or not achievement.condition(counters):
                continue
            self.data["achievements"].append(achievement.id)
            self.data["points"] = self.points + achievement.points
            unlocked.add(achievement.id)
            newly.append(achievement)
        if newly:
            logger.info("Unlocked achievements: %s", ", ".join(a.id for a in newly))
            self.save()
        return newly

    # bookmarks

    def bookmarks(self) -> List[Dict[str, Any]]:
        return list(self.data["bookmarks"])

    def is_bookmarked(self, feature_id: Any) -> bool:
        return any(_same_id(b["id"], feature_id) for b in self.data["bookmarks"])

    def toggle_bookmark(self, feature: Feature) -> bool:
        """Add or remove ``feature``; returns True when it is now bookmarked."""
        existing = [b for b in self.data["bookmarks"] if _same_id(b["id"], feature.id)]
        if existing:
            self.data["bookmarks"] = [b for b in self.data["bookmarks"] if not _same_id(b["id"], feature.id)]
            self.save()
            return False
        self.data["bookmarks"].append(
            {
                "id": feature.id,
                "title": feature.title,
                "category": feature.category,
                "lat": feature.lat,
                "lon": feature.lon,
            }
        )
        self.save()
        self.evaluate_achievements()
        return True

    # leaderboard and daily challenge

    def update_leaderboard(self, name: str) -> List[Dict[str, Any]]:
        board = [entry for entry in self.data["leaderboard"] if entry.get("name") != name]
        board.append({"name": name, "points": self.points})
        board.sort(key=lambda entry: entry["points"], reverse=True)
        self.data["leaderboard"] = board[:LEADERBOARD_SIZE]
        self.save()
        return list(self.data["leaderboard"])

    def daily_challenge(self, today: Optional[date] = None) -> DailyChallenge:
        today = today or date.today()
        stored = self.data.get("daily_challenge") or {}
        if stored.get("date") == today.isoformat():
            challenge = _challenge_by_id(stored.get("id"))
            if challenge is not None:
                return challenge
        challenge = DAILY_CHALLENGES[today.toordinal() % len(DAILY_CHALLENGES)]
        self.data["daily_challenge"] = {
            "date": today.isoformat(),
            "id": challenge.id,
            "baseline": int(self.data["counters"].get(challenge.counter, 0)),
            "completed": False,
        }
        self.save()
        return challenge

    def check_daily_challenge(self, today: Optional[date] = None) -> bool:
        """Award the daily challenge once its counter moved ``target`` past the baseline."""
        challenge = self.daily_challenge(today)
        stored = self.data["daily_challenge"]
        if stored.get("completed"):
            return False
        progress = int(self.data["counters"].get(challenge.counter, 0)) - int(stored.get("baseline", 0))
        if progress < challenge.target:
            return False
        stored["completed"] = True
        self.data["points"] = self.points + challenge.points
        self.save()
        return True


def _challenge_by_id(challenge_id: Optional[str]) -> Optional[DailyChallenge]:
    return next((c for c in DAILY_CHALLENGES if c.id == challenge_id), None)


def _same_id(left: Any, right: Any) -> bool:
    return left == right or str(left) == str(right)
