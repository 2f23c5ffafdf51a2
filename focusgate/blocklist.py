from __future__ import annotations

import logging
from typing import Iterable
from urllib.parse import urlsplit

from .errors import InvalidConfigError, PersistenceError
from .store import StateStore

logger = logging.getLogger(__name__)

WEBSITES_KEY = "blocked_websites"
GATE_ENABLED_KEY = "gate_enabled"
DEFAULT_BLOCKED_WEBSITES = ("instagram.com", "youtube.com")


def normalize_hostname(raw: str) -> str:
    text = raw.strip().lower()
    if not text:
        return ""
    if "://" not in text:
        text = f"//{text}"
    try:
        host = urlsplit(text).hostname or ""
    except ValueError:
        return ""
    if host.startswith("www."):
        host = host[4:]
    return host.strip(".")


def normalize_websites(raw: str | Iterable[str]) -> list[str]:
    if isinstance(raw, str):
        pieces = raw.split(",")
    else:
        pieces = list(raw)

    clean: list[str] = []
    seen: set[str] = set()
    for piece in pieces:
        host = normalize_hostname(str(piece))
        if not host or host in seen:
            continue
        seen.add(host)
        clean.append(host)
    return clean


def hostname_of(url: str) -> str | None:
    try:
        host = urlsplit(url.strip()).hostname
    except ValueError:
        return None
    return host.lower() if host else None


class BlockList:
    """Persisted list of distracting hostnames plus the gate's on/off flag."""

    def __init__(self, store: StateStore) -> None:
        self.store = store

    def websites(self) -> list[str]:
        try:
            saved = self.store.get_json(WEBSITES_KEY)
        except PersistenceError:
            logger.error("could not read blocked websites, using defaults", exc_info=True)
            return list(DEFAULT_BLOCKED_WEBSITES)
        # Only a missing key gets the defaults; an emptied list stays empty.
        if isinstance(saved, list):
            return normalize_websites(saved)

        defaults = list(DEFAULT_BLOCKED_WEBSITES)
        self._write(WEBSITES_KEY, defaults)
        return defaults

    def replace(self, websites: Iterable[str]) -> list[str]:
        clean = normalize_websites(websites)
        self._write(WEBSITES_KEY, clean)
        return clean

    def add(self, website: str) -> list[str]:
        host = normalize_hostname(website)
        if not host:
            raise InvalidConfigError(f"无法识别的网站：{website}", field="website")
        return self.replace([*self.websites(), host])

    def remove(self, website: str) -> list[str]:
        host = normalize_hostname(website)
        return self.replace([item for item in self.websites() if item != host])

    def enabled(self) -> bool:
        try:
            saved = self.store.get_json(GATE_ENABLED_KEY)
        except PersistenceError:
            logger.error("could not read gate flag, assuming enabled", exc_info=True)
            return True
        return saved is not False

    def set_enabled(self, enabled: bool) -> bool:
        self._write(GATE_ENABLED_KEY, bool(enabled))
        return bool(enabled)

    def should_redirect(self, url: str) -> bool:
        if not self.enabled():
            return False
        host = hostname_of(url)
        if not host:
            return False
        return any(site in host for site in self.websites())

    def _write(self, key: str, value: object) -> None:
        try:
            self.store.set_json(key, value)
        except PersistenceError:
            logger.error("could not save %s", key, exc_info=True)
