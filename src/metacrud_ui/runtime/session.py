"""
Per-user session context.

One explicit object carries what used to be scattered session singletons:
the user's roles, the active project, the form layout mode, and which
controller currently holds an instance dirty. It is passed to the
components that need it; nothing reads it from global state.
"""

from __future__ import annotations

import logging
import weakref
from collections.abc import Iterable
from typing import Any, Protocol, runtime_checkable

from metacrud.core.errors import PreconditionError
from metacrud.core.ir import Entity
from metacrud_back.config import LayoutMode

logger = logging.getLogger(__name__)


@runtime_checkable
class ProjectChangeListener(Protocol):
    def on_active_project_changed(self, project: Entity | None) -> None: ...


def _instance_key(instance: Entity) -> tuple[str, Any]:
    if instance.id is not None:
        return (type(instance).__name__, instance.id)
    return (type(instance).__name__, f"new:{id(instance)}")


def _same_entity(a: Entity | None, b: Entity | None) -> bool:
    if a is None or b is None:
        return a is b
    if a.id is None or b.id is None:
        return a is b
    return type(a) is type(b) and a.id == b.id


class SessionContext:
    """
    State shared by the screens of one user session.

    Args:
        user: The signed-in user, None for anonymous access
        roles: Role names granted to the user
        layout_mode: Initial form layout (VERTICAL unless configured)
    """

    def __init__(
        self,
        user: Any = None,
        roles: Iterable[str] = (),
        layout_mode: LayoutMode = LayoutMode.VERTICAL,
    ) -> None:
        self.user = user
        self.roles = frozenset(roles)
        self._layout_mode = layout_mode
        self._active_project: Entity | None = None
        self._project_listeners: weakref.WeakSet[ProjectChangeListener] = weakref.WeakSet()
        self._claims: dict[tuple[str, Any], object] = {}

    @property
    def authenticated(self) -> bool:
        return self.user is not None

    # -------------------------------------------------------------------------
    # Layout
    # -------------------------------------------------------------------------

    @property
    def layout_mode(self) -> LayoutMode:
        return self._layout_mode

    def set_layout_mode(self, mode: LayoutMode | str) -> None:
        self._layout_mode = LayoutMode(mode)
        logger.debug("Layout mode set to %s", self._layout_mode)

    def toggle_layout_mode(self) -> LayoutMode:
        self._layout_mode = (
            LayoutMode.HORIZONTAL
            if self._layout_mode == LayoutMode.VERTICAL
            else LayoutMode.VERTICAL
        )
        return self._layout_mode

    # -------------------------------------------------------------------------
    # Active project
    # -------------------------------------------------------------------------

    @property
    def active_project(self) -> Entity | None:
        return self._active_project

    def add_project_listener(self, listener: ProjectChangeListener) -> None:
        self._project_listeners.add(listener)

    def remove_project_listener(self, listener: ProjectChangeListener) -> None:
        self._project_listeners.discard(listener)

    def set_active_project(self, project: Entity | None) -> int:
        """
        Switch the active project and notify project listeners.

        Setting the project that is already active notifies nobody.
        Returns how many listeners raised; each failure is logged.
        """
        previous = self._active_project
        if _same_entity(previous, project):
            return 0
        self._active_project = project
        logger.debug("Active project changed to %s", getattr(project, "name", None))
        failures = 0
        for listener in list(self._project_listeners):
            try:
                listener.on_active_project_changed(project)
            except Exception:
                failures += 1
                logger.exception("Project listener %s failed", type(listener).__name__)
        return failures

    # -------------------------------------------------------------------------
    # Dirty claims
    # -------------------------------------------------------------------------

    def claim(self, owner: object, instance: Entity) -> None:
        """
        Record that ``owner`` holds ``instance`` dirty.

        Raises:
            PreconditionError: Another owner already holds it dirty
        """
        key = _instance_key(instance)
        holder = self._claims.get(key)
        if holder is not None and holder is not owner:
            raise PreconditionError(
                f"{type(instance).__name__} is being edited in another view. "
                "Save or discard those changes first."
            )
        self._claims[key] = owner

    def release(self, owner: object) -> None:
        """Drop every claim held by ``owner``."""
        for key in [k for k, v in self._claims.items() if v is owner]:
            del self._claims[key]

    def holder(self, instance: Entity) -> object | None:
        return self._claims.get(_instance_key(instance))
