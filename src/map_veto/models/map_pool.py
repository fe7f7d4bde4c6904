"""Competitive map pool."""

from dataclasses import dataclass


@dataclass(frozen=True)
class MapInfo:
    """A map available to the draft."""

    id: str
    display_name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "display_name": self.display_name}


# Pool order is the order used to relabel undecided maps and to list deciders.
MAP_POOL: tuple[MapInfo, ...] = (
    MapInfo("mirage", "Mirage"),
    MapInfo("inferno", "Inferno"),
    MapInfo("nuke", "Nuke"),
    MapInfo("overpass", "Overpass"),
    MapInfo("ancient", "Ancient"),
    MapInfo("anubis", "Anubis"),
    MapInfo("vertigo", "Vertigo"),
)

_MAPS_BY_ID = {m.id: m for m in MAP_POOL}


def map_pool_size() -> int:
    return len(MAP_POOL)


def map_ids() -> list[str]:
    """Map ids in pool order."""
    return [m.id for m in MAP_POOL]


def get_map(map_id: str) -> MapInfo | None:
    return _MAPS_BY_ID.get(map_id)


def is_known_map(map_id: str) -> bool:
    return map_id in _MAPS_BY_ID
