# src/school_agenda/core/session.py

from __future__ import annotations

import logging

from ..errors import ValidationError
from ..storage.kv_store import KEY_LOGGED_IN, KEY_THEME
from .ports import KeyValueRepo

logger = logging.getLogger(__name__)

THEMES = ("light", "dark")


class SessionStore:
    """
    Login gate and theme preference.

    Authentication is a stub: any credentials are accepted, only the
    "logged in" flag is persisted.
    """

    def __init__(self, store: KeyValueRepo) -> None:
        self._store = store

    async def is_logged_in(self) -> bool:
        return (await self._store.get_item(KEY_LOGGED_IN)) == "true"

    async def login(self, username: str = "", password: str = "") -> None:
        await self._store.set_item(KEY_LOGGED_IN, "true")
        logger.info("Logged in user=%s", username or "-")

    async def logout(self) -> None:
        await self._store.remove_item(KEY_LOGGED_IN)
        logger.info("Logged out")

    async def get_theme(self) -> str:
        value = await self._store.get_item(KEY_THEME)
        return value if value in THEMES else "light"

    async def set_theme(self, theme: str) -> None:
        if theme not in THEMES:
            raise ValidationError(f"theme must be one of {', '.join(THEMES)}")
        await self._store.set_item(KEY_THEME, theme)
