"""Naming utilities: revision identifiers and definition filenames."""

from __future__ import annotations

import re
import uuid

from schemachain.exceptions import ConfigurationError

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_REVISION_RE = re.compile(r"[0-9A-Za-z]+")
_FILENAME_RE = re.compile(r"^(?P<revision>[0-9A-Za-z]+)_(?P<slug>\w+)\.py$")


def slugify(description: str, max_length: int = 40) -> str:
    """Turn a free-text description into a filename-safe suffix.

    Examples:
        Rename users to accounts -> rename_users_to_accounts
        Add NOT NULL to "email"! -> add_not_null_to_email
        ---                      -> (empty string)
    """
    slug = _NON_ALNUM.sub("_", description.lower()).strip("_")
    if len(slug) > max_length:
        slug = slug[:max_length].rstrip("_")
    return slug


def new_revision_id() -> str:
    """Return a fresh 12-character hexadecimal revision identifier."""
    return uuid.uuid4().hex[-12:]


def validate_revision_id(revision: str) -> str:
    """Reject identifiers that cannot lead a definition filename."""
    if not _REVISION_RE.fullmatch(revision):
        raise ConfigurationError(
            f"Invalid revision id {revision!r}: use letters and digits only"
        )
    return revision


def migration_filename(revision: str, description: str) -> str:
    """Build ``<revision>_<slug>.py``; the revision always leads."""
    validate_revision_id(revision)
    slug = slugify(description) or "migration"
    return f"{revision}_{slug}.py"


def split_filename(filename: str) -> tuple[str, str] | None:
    """Split a definition filename into ``(revision, slug)``.

    Returns None for files that are not migration definitions
    (``__init__.py``, ``helper.py``, ``README.md``).
    """
    match = _FILENAME_RE.match(filename)
    if not match:
        return None
    return match.group("revision"), match.group("slug")
