from .fldr import (
    ChecklistItem,
    FldrCreate,
    FldrPatch,
    FldrResponse,
    FlightSegment,
    HotelInfo,
    JobInfo,
    Person,
    Photo,
    PolishedMessage,
    Product,
    ReferenceLink,
    RentalCarInfo,
    VenueInfo,
)

__all__ = [
    "ChecklistItem",
    "FldrCreate",
    "FldrPatch",
    "FldrResponse",
    "FlightSegment",
    "HotelInfo",
    "JobInfo",
    "Person",
    "Photo",
    "PolishedMessage",
    "Product",
    "ReferenceLink",
    "RentalCarInfo",
    "VenueInfo",
]
