"""Events emitted by match transitions.

Consumers (sound, confetti, UI notices) subscribe through the EventBus.
Delivery is fire-and-forget; nothing flows back into the core.
"""

from dataclasses import dataclass, field

from map_veto.models.match import MapState, Step, Team, TeamSide


@dataclass
class MatchEvent:
    room_id: str

    @property
    def type(self) -> str:
        return type(self).__name__

    def payload(self) -> dict:
        return {}

    def to_dict(self) -> dict:
        return {"type": self.type, "room_id": self.room_id, **self.payload()}


@dataclass
class StepChanged(MatchEvent):
    from_step: Step = Step.CONFIG
    to_step: Step = Step.CONFIG

    def payload(self) -> dict:
        return {"from_step": self.from_step.value, "to_step": self.to_step.value}


@dataclass
class TeamsFormed(MatchEvent):
    team_a: Team | None = None
    team_b: Team | None = None

    def payload(self) -> dict:
        return {
            "team_a": self.team_a.to_dict() if self.team_a else None,
            "team_b": self.team_b.to_dict() if self.team_b else None,
        }


@dataclass
class MapBanned(MatchEvent):
    team: TeamSide = TeamSide.TEAM_A
    map_id: str = ""

    def payload(self) -> dict:
        return {"team": self.team.value, "map_id": self.map_id}


@dataclass
class MapPicked(MatchEvent):
    team: TeamSide = TeamSide.TEAM_A
    map_id: str = ""

    def payload(self) -> dict:
        return {"team": self.team.value, "map_id": self.map_id}


@dataclass
class DraftComplete(MatchEvent):
    final_maps: list[MapState] = field(default_factory=list)

    def payload(self) -> dict:
        return {"final_maps": [m.to_dict() for m in self.final_maps]}
