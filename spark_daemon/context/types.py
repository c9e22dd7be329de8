"""
Context bundle types (rebuilt for every execution)
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class CurrentFileContext:
    path: str
    content: str


@dataclass
class MentionedFile:
    path: str
    content: str
    priority: float


@dataclass
class NearbyFile:
    path: str
    summary: str
    distance: int


@dataclass
class AgentAIConfig:
    """Per-agent backend overrides from the agent document's ai: block"""
    provider: Optional[str] = None
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None

    @property
    def has_overrides(self) -> bool:
        return any(v is not None for v in (self.model, self.temperature, self.max_tokens))


@dataclass
class AgentContext:
    path: str
    persona: str
    ai_config: Optional[AgentAIConfig] = None


@dataclass
class ServiceConnection:
    name: str
    target: str


@dataclass
class LoadedContext:
    current_file: CurrentFileContext
    mentioned_files: List[MentionedFile] = field(default_factory=list)
    nearby_files: List[NearbyFile] = field(default_factory=list)
    agent: Optional[AgentContext] = None
    service_connections: List[ServiceConnection] = field(default_factory=list)
