"""
Database Models

Key Models:
- StoredValue: per-browser key/value storage for the extracted reading
"""
from datetime import datetime, timezone
from scan2study import db


class StoredValue(db.Model):
    """
    One key of a browser's storage.

    Rows are scoped by the browser id kept in the signed session cookie, so
    two browsers never see each other's readings.
    """
    __tablename__ = 'stored_values'
    __table_args__ = (
        db.UniqueConstraint('browser_id', 'key', name='uq_stored_values_browser_key'),
    )

    id = db.Column(db.Integer, primary_key=True)
    browser_id = db.Column(db.String(64), nullable=False, index=True)
    key = db.Column(db.String(100), nullable=False)
    value = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    @classmethod
    def get_value(cls, browser_id, key):
        entry = cls.query.filter_by(browser_id=browser_id, key=key).first()
        return entry.value if entry else None

    @classmethod
    def put_value(cls, browser_id, key, value):
        """Stage a write; the caller commits"""
        entry = cls.query.filter_by(browser_id=browser_id, key=key).first()
        if entry:
            entry.value = value
            entry.updated_at = datetime.now(timezone.utc)
        else:
            entry = cls(browser_id=browser_id, key=key, value=value)
            db.session.add(entry)
        return entry
