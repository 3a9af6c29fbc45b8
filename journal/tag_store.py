"""Tag definitions for explaining compare results, with usage counts."""

from __future__ import annotations

import json
import logging
import re
import sqlite3
from datetime import datetime, timezone
from typing import Iterable, Optional

from config import TAG_COLORS, TAG_IMPACTS
from db import get_db
from models import Tag

logger = logging.getLogger(__name__)


class DuplicateTagError(ValueError):
    """Another tag already uses this name or id."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def tag_id_from_name(name: str) -> str:
    """URL-safe slug: "Late Entry!" -> "late-entry"."""
    slug = re.sub(r"[^a-z0-9\s-]", "", name.lower())
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def pick_tag_color(tag_id: str) -> str:
    """Palette colour derived from the id; the same id always gets the same colour."""
    return TAG_COLORS[sum(map(ord, tag_id)) % len(TAG_COLORS)]


def _row_to_tag(row: sqlite3.Row) -> Tag:
    return Tag(
        id=row["id"],
        name=row["name"],
        color=row["color"],
        description=row["description"],
        created_at=row["created_at"],
        last_used=row["last_used"],
        usage_count=row["usage_count"],
        positive_count=row["positive_count"],
        negative_count=row["negative_count"],
    )


def get_tags() -> list[Tag]:
    with get_db() as conn:
        rows = conn.execute("SELECT * FROM tags ORDER BY name COLLATE NOCASE").fetchall()
    return [_row_to_tag(r) for r in rows]


def get_tag(tag_id: str) -> Optional[Tag]:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM tags WHERE id=?", (tag_id,)).fetchone()
    return _row_to_tag(row) if row else None


def save_tag(
    name: str,
    description: Optional[str] = None,
    color: Optional[str] = None,
    tag_id: Optional[str] = None,
) -> Tag:
    """Create a tag, or update the one named by ``tag_id``.

    Without ``tag_id`` the id is slugged from the name and any clash on
    id or name (case-insensitive) raises DuplicateTagError. With
    ``tag_id`` an existing tag is renamed/recoloured in place; a missing
    one is created under that id.
    """
    name = (name or "").strip() if isinstance(name, str) else ""
    if not name:
        raise ValueError("Tag name is required")
    new_id = tag_id or tag_id_from_name(name)
    if not new_id:
        raise ValueError("Tag name must contain letters or digits")

    with get_db() as conn:
        clash = conn.execute(
            "SELECT id FROM tags WHERE id=? OR name=? COLLATE NOCASE", (new_id, name)
        ).fetchall()
        clash_ids = {r["id"] for r in clash}
        if tag_id is None and clash_ids:
            raise DuplicateTagError("A tag with this name already exists")
        if tag_id is not None and clash_ids - {tag_id}:
            raise DuplicateTagError("A tag with this name already exists")

        existing = conn.execute("SELECT * FROM tags WHERE id=?", (new_id,)).fetchone()
        if existing:
            conn.execute(
                "UPDATE tags SET name=?, description=?, color=? WHERE id=?",
                (name,
                 description if description else existing["description"],
                 color or existing["color"],
                 new_id),
            )
        else:
            conn.execute(
                """INSERT INTO tags (id, name, description, color, created_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (new_id, name, description or "", color or pick_tag_color(new_id), _now()),
            )
            logger.info("Created tag %s", new_id)
        row = conn.execute("SELECT * FROM tags WHERE id=?", (new_id,)).fetchone()
    return _row_to_tag(row)


def adjust_tag_usage(tag_ids: Iterable[str], impact: Optional[str] = None, decrement: bool = False) -> int:
    """Bump (or lower, floored at 0) usage counts by hand. Returns ids given.

    Unknown ids are ignored. Counts are rebuilt from assignments whenever a
    compared day's tags change, so this only matters between recounts.
    """
    tag_ids = list(tag_ids)
    if not tag_ids:
        raise ValueError("Tag IDs array is required")
    step = -1 if decrement else 1
    pos = step if impact == "positive" else 0
    neg = step if impact == "negative" else 0
    now = _now()
    with get_db() as conn:
        for tag_id in tag_ids:
            conn.execute(
                """UPDATE tags SET
                       usage_count = MAX(usage_count + ?, 0),
                       positive_count = MAX(positive_count + ?, 0),
                       negative_count = MAX(negative_count + ?, 0),
                       last_used = CASE WHEN ? > 0 THEN ? ELSE last_used END
                   WHERE id=?""",
                (step, pos, neg, step, now, tag_id),
            )
    return len(tag_ids)


def delete_tag(tag_id: str) -> bool:
    """Drop a tag and strip it from every compared day."""
    with get_db() as conn:
        cur = conn.execute("DELETE FROM tags WHERE id=?", (tag_id,))
        if cur.rowcount == 0:
            return False
        rows = conn.execute("SELECT date, tag_assignments FROM compare_logs").fetchall()
        for row in rows:
            assignments = json.loads(row["tag_assignments"] or "[]")
            kept = [a for a in assignments if a.get("tagId") != tag_id]
            if len(kept) != len(assignments):
                conn.execute(
                    "UPDATE compare_logs SET tag_assignments=? WHERE date=?",
                    (json.dumps(kept), row["date"]),
                )
    logger.info("Deleted tag %s", tag_id)
    return True


def recount_tags(conn: sqlite3.Connection) -> list[dict]:
    """Rebuild every tag's counts from compare-day assignments on ``conn``.

    Returns one ``{tagId, total, positive, negative, lastUsed}`` per tag.
    """
    counts = {
        r["id"]: {"tagId": r["id"], "total": 0, "positive": 0, "negative": 0, "lastUsed": None}
        for r in conn.execute("SELECT id FROM tags").fetchall()
    }
    for row in conn.execute("SELECT tag_assignments FROM compare_logs").fetchall():
        for a in json.loads(row["tag_assignments"] or "[]"):
            c = counts.get(a.get("tagId"))
            if c is None:
                continue
            c["total"] += 1
            if a.get("impact") in TAG_IMPACTS:
                c[a["impact"]] += 1
            assigned = a.get("assignedAt") or ""
            if assigned and (c["lastUsed"] is None or assigned > c["lastUsed"]):
                c["lastUsed"] = assigned
    for c in counts.values():
        conn.execute(
            """UPDATE tags SET usage_count=?, positive_count=?, negative_count=?,
                   last_used=COALESCE(?, last_used)
               WHERE id=?""",
            (c["total"], c["positive"], c["negative"], c["lastUsed"], c["tagId"]),
        )
    return list(counts.values())


def recalculate_tag_usage() -> list[dict]:
    with get_db() as conn:
        summary = recount_tags(conn)
    logger.info("Recounted usage for %d tags", len(summary))
    return summary
