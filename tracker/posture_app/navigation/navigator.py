"""Stack navigator with validated route parameters."""
from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional, Tuple, Union

from loguru import logger
from pydantic import ValidationError as SchemaError

from posture_app.core.errors import NavigationError
from posture_app.navigation.routes import ROUTE_PARAMS, RouteName, RouteParams

ParamsLike = Union[RouteParams, Mapping[str, Any], None]


@dataclass(frozen=True)
class Route:
    name: RouteName
    params: RouteParams
    key: int


@dataclass(frozen=True)
class NavigationEvent:
    action: str
    route: Route
    removed: Tuple[Route, ...] = field(default_factory=tuple)


Listener = Callable[[NavigationEvent], None]


def validate_params(name: Union[RouteName, str], params: ParamsLike = None) -> Tuple[RouteName, RouteParams]:
    """Resolve ``name`` and coerce ``params`` into the route's schema."""
    try:
        route_name = RouteName(name)
    except ValueError as exc:
        raise NavigationError(f"Unknown screen: {name}") from exc
    schema = ROUTE_PARAMS[route_name]
    if isinstance(params, RouteParams):
        if not isinstance(params, schema):
            raise NavigationError(
                f"{route_name.value} expects {schema.__name__}, got {type(params).__name__}"
            )
        return route_name, params
    try:
        return route_name, schema.model_validate(dict(params or {}))
    except SchemaError as exc:
        raise NavigationError(f"Invalid parameters for {route_name.value}: {exc.errors()[0]['msg']}") from exc


class Navigator:
    def __init__(self, initial: RouteName = RouteName.STUDENT_LIST, params: ParamsLike = None) -> None:
        self._keys = itertools.count(1)
        self._listeners: List[Listener] = []
        name, p = validate_params(initial, params)
        self._stack: List[Route] = [Route(name, p, next(self._keys))]

    @property
    def stack(self) -> Tuple[Route, ...]:
        return tuple(self._stack)

    @property
    def current(self) -> Route:
        return self._stack[-1]

    @property
    def can_go_back(self) -> bool:
        return len(self._stack) > 1

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _emit(self, action: str, removed: Tuple[Route, ...] = ()) -> Route:
        event = NavigationEvent(action, self.current, removed)
        logger.debug("nav {} -> {} (depth {})", action, self.current.name.value, len(self._stack))
        for listener in list(self._listeners):
            listener(event)
        return self.current

    def navigate(self, name: Union[RouteName, str], params: ParamsLike = None) -> Route:
        route_name, p = validate_params(name, params)
        self._stack.append(Route(route_name, p, next(self._keys)))
        return self._emit("navigate")

    def replace(self, name: Union[RouteName, str], params: ParamsLike = None) -> Route:
        route_name, p = validate_params(name, params)
        removed = self._stack.pop()
        self._stack.append(Route(route_name, p, next(self._keys)))
        return self._emit("replace", (removed,))

    def go_back(self) -> Optional[Route]:
        """Pop the top route. Returns the newly focused route, or None at the root."""
        if not self.can_go_back:
            return None
        removed = self._stack.pop()
        return self._emit("back", (removed,))

    def pop_to_top(self) -> Route:
        removed = tuple(reversed(self._stack[1:]))
        del self._stack[1:]
        if not removed:
            return self.current
        return self._emit("pop_to_top", removed)

    def pop_to(self, name: RouteName) -> Optional[Route]:
        """Pop until the nearest route named ``name`` is on top."""
        for i in range(len(self._stack) - 1, -1, -1):
            if self._stack[i].name is name:
                removed = tuple(reversed(self._stack[i + 1:]))
                del self._stack[i + 1:]
                if not removed:
                    return self.current
                return self._emit("pop_to", removed)
        return None
