"""Filter state: one active filter (county, district or project type) at a time."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from utils.errors import InvalidFilterValue

logger = logging.getLogger(__name__)

MIN_DISTRICT = 1
MAX_DISTRICT = 12


class FilterKind(str, Enum):
    NONE = "none"
    COUNTY = "county"
    DISTRICT = "district"
    PROJECT_TYPE = "project_type"


def validate_district(value) -> int:
    """
    Validate a district selection.

    Args:
        value: District number as int or integer string

    Returns:
        int: District number in 1-12

    Raises:
        InvalidFilterValue: Value is not an integer or out of range (never clamped)
    """
    if isinstance(value, bool):
        raise InvalidFilterValue(f"Invalid district: {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidFilterValue(f"Invalid district: {value!r}")
        value = int(value)
    try:
        number = int(str(value).strip()) if not isinstance(value, int) else value
    except ValueError:
        raise InvalidFilterValue(f"Invalid district: {value!r}") from None
    if not MIN_DISTRICT <= number <= MAX_DISTRICT:
        raise InvalidFilterValue(
            f"District must be between {MIN_DISTRICT} and {MAX_DISTRICT}, got {number}"
        )
    return number


def _validate_name(value, label: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidFilterValue(f"{label} must not be blank")
    return str(value).strip()


@dataclass(frozen=True)
class FilterState:
    """The single active selection governing every derived view."""

    kind: FilterKind = FilterKind.NONE
    value: str | int | None = None

    @classmethod
    def none(cls) -> "FilterState":
        return cls()

    @classmethod
    def county(cls, name: str) -> "FilterState":
        return cls(FilterKind.COUNTY, _validate_name(name, "County"))

    @classmethod
    def district(cls, number) -> "FilterState":
        return cls(FilterKind.DISTRICT, validate_district(number))

    @classmethod
    def project_type(cls, category: str) -> "FilterState":
        return cls(FilterKind.PROJECT_TYPE, _validate_name(category, "Project type"))

    @property
    def is_none(self) -> bool:
        return self.kind is FilterKind.NONE

    @property
    def county_name(self) -> str | None:
        return self.value if self.kind is FilterKind.COUNTY else None

    @property
    def district_number(self) -> int | None:
        return self.value if self.kind is FilterKind.DISTRICT else None

    @property
    def project_type_category(self) -> str | None:
        return self.value if self.kind is FilterKind.PROJECT_TYPE else None

    def describe(self) -> str:
        if self.kind is FilterKind.COUNTY:
            return f"{self.value} County"
        if self.kind is FilterKind.DISTRICT:
            return f"District {self.value}"
        if self.kind is FilterKind.PROJECT_TYPE:
            return f"Project type {self.value}"
        return "No filter"


FilterListener = Callable[[FilterState, FilterState], None]


class FilterStateMachine:
    """
    Owns the current FilterState and applies the named transitions.

    Selecting any filter replaces whatever was active, so county, district
    and project type are mutually exclusive. Every effective transition
    calls ``on_change(new_state, previous_state)`` synchronously.
    """

    def __init__(self, on_change: FilterListener | None = None):
        self._state = FilterState.none()
        self._on_change = on_change

    @property
    def state(self) -> FilterState:
        return self._state

    def select_county(self, name: str) -> FilterState:
        return self._transition(FilterState.county(name))

    def select_district(self, number) -> FilterState:
        return self._transition(FilterState.district(number))

    def select_project_type(self, category: str) -> FilterState:
        return self._transition(FilterState.project_type(category))

    def clear_current(self, kind: FilterKind) -> FilterState:
        """Reset to None only if ``kind`` is the active filter category."""
        if kind is FilterKind.NONE or self._state.kind is not kind:
            logger.debug("Clear %s ignored; active filter is %s", kind.value, self._state.kind.value)
            return self._state
        return self._transition(FilterState.none())

    def clear_all(self) -> FilterState:
        return self._transition(FilterState.none())

    def _transition(self, new_state: FilterState) -> FilterState:
        previous = self._state
        self._state = new_state
        logger.info("Filter changed: %s -> %s", previous.describe(), new_state.describe())
        if self._on_change is not None:
            self._on_change(new_state, previous)
        return new_state
