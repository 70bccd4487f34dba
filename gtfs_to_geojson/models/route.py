from enum import IntEnum

from pydantic import BaseModel


class GTFSRouteType(IntEnum):
    """
    Basic `route_type` values of routes.txt, the ones `excludeRouteTypes` accepts

    Reference: https://gtfs.org/documentation/schedule/reference/#routestxt
    """

    TRAM = 0
    SUBWAY = 1
    RAIL = 2
    BUS = 3
    FERRY = 4
    CABLE_TRAM = 5
    AERIAL_LIFT = 6
    FUNICULAR = 7
    TROLLEYBUS = 11
    MONORAIL = 12


class Route(BaseModel):
    route_id: str
    route_short_name: str | None = None
    route_long_name: str | None = None
    # Extended route types (700, 900, ...) are kept as plain integers
    route_type: int | None = None
    agency_id: str | None = None
    route_color: str | None = None
    route_text_color: str | None = None
