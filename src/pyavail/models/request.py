"""Availability request model threaded through the resolve pipeline."""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from pyavail.exceptions import AvailValidationError


class Manufacturer(str, enum.Enum):
    """Vendors with a supported availability backend."""

    BSH = "bsh"
    SUBZERO = "subzero"
    MIELE = "miele"

    @classmethod
    def _missing_(cls, value: object) -> Manufacturer | None:
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        return None

    @classmethod
    def parse(cls, value: Any) -> Manufacturer | None:
        """Case-insensitive parse; unknown or empty values give ``None``."""
        if value is None:
            return None
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class RequestUser(BaseModel):
    """Directory profile of the user who asked for availability."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    given_name: str | None = None
    surname: str | None = None
    display_name: str | None = None
    job_title: str | None = None
    user_principal_name: str | None = None
    office_location: str | None = None


class AvailabilityRequest(BaseModel):
    """Immutable availability request.

    Every pipeline stage returns an updated copy via :meth:`evolve`.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    manufacturer: Manufacturer | None = None
    showroom: str | None = None
    model_number: str | None = None
    warehouse: str | None = None
    utc_time: str | None = None
    availability: str | None = None
    user: RequestUser | None = None

    @field_validator("manufacturer", mode="before")
    @classmethod
    def _parse_manufacturer(cls, value: Any) -> Manufacturer | None:
        return Manufacturer.parse(value)

    @field_validator("showroom", "model_number", "warehouse", mode="after")
    @classmethod
    def _empty_to_none(cls, value: str | None) -> str | None:
        if value is None or not value:
            return None
        return value

    def evolve(self, **changes: Any) -> AvailabilityRequest:
        """Return a validated copy with *changes* applied."""
        return type(self).model_validate({**self.model_dump(), **changes})

    def require_dispatchable(self) -> tuple[Manufacturer, str]:
        """Return ``(manufacturer, model_number)`` or raise if either is missing."""
        if self.manufacturer is None:
            raise AvailValidationError("No supported manufacturer provided.")
        if not self.model_number:
            raise AvailValidationError("No model number provided.")
        return self.manufacturer, self.model_number

    def require_warehouse(self) -> str:
        if not self.warehouse:
            raise AvailValidationError("No warehouse found.")
        return self.warehouse
