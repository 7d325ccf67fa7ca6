"""Scenario definitions: ordered, immutable playback steps."""
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Step:
    active_node: str
    duration_ms: int
    highlight_nodes: tuple[str, ...] = ()
    description: str = ""

    def __post_init__(self):
        # De-duplicate while keeping declaration order
        object.__setattr__(
            self, "highlight_nodes", tuple(dict.fromkeys(self.highlight_nodes))
        )

    @property
    def involved_nodes(self) -> set[str]:
        return {self.active_node, *self.highlight_nodes}


@dataclass(frozen=True)
class Scenario:
    id: str
    steps: tuple[Step, ...]
    name: str = ""
    description: str = ""
    color: str = field(default="", compare=False)

    def __post_init__(self):
        object.__setattr__(self, "steps", tuple(self.steps))

    def __len__(self) -> int:
        return len(self.steps)

    @property
    def total_duration_ms(self) -> int:
        return sum(s.duration_ms for s in self.steps)
