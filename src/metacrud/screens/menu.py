"""
Menu tree built from screen definitions.

A screen is placed under its ``parent_menu`` path when set, otherwise under
the leading segments of its dotted title ("Project.Risks" goes under
"Project" with label "Risks"). Each level is ordered by decimal
``order_priority``, then label.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from metacrud.core.ir import ScreenDefinition

from .security import SecurityPredicate

_DEFAULT_PRIORITY = Decimal("1.0")


@dataclass
class MenuItem:
    """One node of the menu; groups have no route."""

    label: str
    route: str | None = None
    priority: Decimal = _DEFAULT_PRIORITY
    children: list[MenuItem] = field(default_factory=list)

    @property
    def is_group(self) -> bool:
        return self.route is None

    def child(self, label: str) -> MenuItem | None:
        for item in self.children:
            if item.label == label:
                return item
        return None

    def find(self, route: str) -> MenuItem | None:
        if self.route == route:
            return self
        for item in self.children:
            found = item.find(route)
            if found is not None:
                return found
        return None


def parse_priority(value: str | None) -> Decimal:
    """Decimal sort key; blank, unparseable and non-finite values use the default."""
    try:
        priority = Decimal((value or "").strip() or _DEFAULT_PRIORITY)
    except InvalidOperation:
        return _DEFAULT_PRIORITY
    return priority if priority.is_finite() else _DEFAULT_PRIORITY



def menu_path(screen: ScreenDefinition) -> tuple[list[str], str]:
    """Group path and leaf label for a screen."""
    segments = [s.strip() for s in (screen.title or screen.route or "").split(".") if s.strip()]
    label = segments[-1] if segments else (screen.route or "")
    if screen.parent_menu.strip():
        groups = [s.strip() for s in screen.parent_menu.split(".") if s.strip()]
    else:
        groups = segments[:-1]
    return groups, label


def _sort(items: list[MenuItem]) -> None:
    items.sort(key=lambda item: (item.priority, item.label))
    for item in items:
        if item.children:
            _sort(item.children)


def build_menu(
    screens: Iterable[ScreenDefinition],
    roles: Iterable[str] = (),
    authenticated: bool = True,
) -> list[MenuItem]:
    """
    Build the menu visible to a session.

    Disabled screens, screens the roles do not permit, and screens whose
    security expression does not parse are left out.
    """
    role_set = frozenset(roles)
    root = MenuItem(label="")
    for screen in screens:
        if not screen.enabled:
            continue
        try:
            predicate = SecurityPredicate.parse(screen.security_permissions)
        except ValueError:
            continue
        if not predicate.permits(role_set, authenticated=authenticated):
            continue

        priority = parse_priority(screen.order_priority)
        groups, label = menu_path(screen)
        parent = root
        for group in groups:
            node = parent.child(group)
            if node is None:
                node = MenuItem(label=group, priority=priority)
                parent.children.append(node)
            else:
                node.priority = min(node.priority, priority)
            parent = node
        parent.children.append(MenuItem(label=label, route=screen.route, priority=priority))

    _sort(root.children)
    return root.children
