"""Pydantic DTOs (Data Transfer Objects) for fldr records."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from fldr_sync.domain.entities import FldrStatus


class _Section(BaseModel):
    """Base for nested record sections — unknown keys survive a round trip."""

    model_config = ConfigDict(extra="allow")


class FlightSegment(_Section):
    id: str
    departure_airport: str | None = None
    departure_code: str | None = None
    departure_address: str | None = None
    departure_time: str | None = None
    arrival_airport: str | None = None
    arrival_code: str | None = None
    arrival_address: str | None = None
    arrival_time: str | None = None
    flight_number: str | None = None
    airline: str | None = None
    confirmation: str | None = None
    notes: str | None = None
    segment_type: Literal["outbound", "return", "connection", "other"] | None = None


class HotelInfo(_Section):
    name: str | None = None
    address: str | None = None
    phone: str | None = None
    confirmation: str | None = None
    check_in: str | None = None
    check_out: str | None = None
    notes: str | None = None


class VenueInfo(_Section):
    name: str | None = None
    address: str | None = None
    contact_name: str | None = None
    contact_phone: str | None = None
    notes: str | None = None


class RentalCarInfo(_Section):
    company: str | None = None
    confirmation: str | None = None
    pickup_location: str | None = None
    pickup_time: str | None = None
    dropoff_location: str | None = None
    dropoff_time: str | None = None
    vehicle_type: str | None = None
    insurance_policy_number: str | None = None
    travel_reservation: str | None = None
    notes: str | None = None


class ReferenceLink(_Section):
    label: str
    url: str


class JobInfo(_Section):
    job_title: str | None = None
    client_name: str | None = None
    item: str | None = None
    quantity: int | None = None
    job_type: Literal["caricatures", "names_monograms"] | None = None
    client_contact_name: str | None = None
    client_contact_phone: str | None = None
    client_contact_email: str | None = None
    event_details: str | None = None
    reference_links: list[ReferenceLink] = Field(default_factory=list)
    team_members: list[str] = Field(default_factory=list)
    pre_engrave_details: str | None = None
    show_up_time: str | None = None
    job_start_time: str | None = None
    job_end_time: str | None = None
    break_start_time: str | None = None
    break_end_time: str | None = None
    use_daily_schedule: bool = False
    daily_start_time: str | None = None
    daily_end_time: str | None = None
    daily_break_start: str | None = None
    daily_break_end: str | None = None


class ChecklistItem(_Section):
    item: str
    completed: bool = False


class Person(_Section):
    name: str
    role: str | None = None
    phone: str | None = None
    email: str | None = None


class Photo(_Section):
    id: str
    url: str
    caption: str | None = None
    uploaded_at: str


class Product(_Section):
    id: str
    name: str
    quantity: int = 0
    notes: str | None = None
    waste: int = 0  # Quantity lost/damaged/wasted


class PolishedMessage(_Section):
    original: str
    draft: str
    polished: str
    polish_level: Literal["light", "full_suit"]
    created_at: str


class FldrCreate(BaseModel):
    """Schema for creating a new fldr.

    ``id`` is set when the fldr was created offline. Replayed creates carry
    the whole record, so extra fields are accepted.
    """

    model_config = ConfigDict(extra="allow")

    title: str = Field(..., min_length=1, max_length=200, examples=["Trip A"])
    date_start: str = Field(..., examples=["2026-11-02"])
    date_end: str | None = None
    location: str | None = None
    id: str | None = Field(None, max_length=36)


class FldrPatch(BaseModel):
    """Partial update — every field optional.

    Each field the caller sets is a complete replacement value for that
    field, so applying the same patch twice gives the same record.
    """

    model_config = ConfigDict(extra="allow")

    title: str | None = None
    date_start: str | None = None
    date_end: str | None = None
    location: str | None = None
    status: FldrStatus | None = None
    attending: bool | None = None
    flight_info: list[FlightSegment] | None = None
    hotel_info: HotelInfo | None = None
    venue_info: VenueInfo | None = None
    rental_car_info: RentalCarInfo | None = None
    job_info: JobInfo | None = None
    checklist: list[ChecklistItem] | None = None
    people: list[Person] | None = None
    photos: list[Photo] | None = None
    products: list[Product] | None = None
    notes: str | None = None
    wrap_up: str | None = None
    polished_messages: list[PolishedMessage] | None = None

    def to_updates(self) -> dict[str, Any]:
        """Only the fields the caller set, as JSON-ready values."""
        return self.model_dump(mode="json", exclude_unset=True)


class FldrResponse(BaseModel):
    """The canonical full record returned by the remote store."""

    model_config = ConfigDict(extra="allow")

    id: str
    title: str
    date_start: str
    date_end: str | None = None
    location: str | None = None
    status: FldrStatus = FldrStatus.INCOMPLETE
    attending: bool = False
    flight_info: list[FlightSegment] | None = None
    hotel_info: HotelInfo | None = None
    venue_info: VenueInfo | None = None
    rental_car_info: RentalCarInfo | None = None
    job_info: JobInfo | None = None
    checklist: list[ChecklistItem] | None = None
    people: list[Person] | None = None
    photos: list[Photo] | None = None
    products: list[Product] | None = None
    notes: str = ""
    wrap_up: str | None = None
    polished_messages: list[PolishedMessage] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
