"""Per-browser storage of the extracted reading.

Mirrors what the upload page keeps for the study page: the parsed text and
the source file name, under two fixed keys.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional

from flask import session

from scan2study import db
from scan2study.models import StoredValue

TEXT_KEY = "scan2study:parsedText"
FILE_NAME_KEY = "scan2study:fileName"
DEFAULT_FILE_NAME = "document.pdf"

BROWSER_SESSION_KEY = "browser_id"


def browser_id() -> str:
    """Return the id of the calling browser, minting one on first use."""
    bid = session.get(BROWSER_SESSION_KEY)
    if not bid:
        bid = uuid.uuid4().hex
        session[BROWSER_SESSION_KEY] = bid
        session.permanent = True
    return bid


@dataclass(frozen=True)
class Reading:
    text: str
    file_name: str


class ReadingStore:
    def __init__(self, bid: Optional[str] = None):
        self.browser_id = bid or browser_id()

    def save(self, text: str, file_name: Optional[str]) -> Reading:
        """Write text and file name together in one transaction."""
        name = file_name or DEFAULT_FILE_NAME
        try:
            StoredValue.put_value(self.browser_id, TEXT_KEY, text)
            StoredValue.put_value(self.browser_id, FILE_NAME_KEY, name)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return Reading(text=text, file_name=name)

    def load(self) -> Optional[Reading]:
        """Return the stored reading, or None when either key is missing."""
        text = StoredValue.get_value(self.browser_id, TEXT_KEY)
        name = StoredValue.get_value(self.browser_id, FILE_NAME_KEY)
        if not text or not name:
            return None
        return Reading(text=text, file_name=name)
