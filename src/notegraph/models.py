"""Pydantic models for the note graph."""

from typing import Any, Literal

from pydantic import BaseModel, Field


class NoteMetadata(BaseModel):
    """Identity of one Markdown note, extracted before link resolution."""

    id: str
    title: str
    path: str  # Absolute file path
    basename: str  # Filename without .md
    aliases: list[str] = Field(default_factory=list)


class LinkPosition(BaseModel):
    """Where a wikilink sits in its file."""

    start: int  # Character offset from start of content
    end: int
    line: int  # 0-indexed


class ParsedWikilink(BaseModel):
    """A single [[target#section|alias]] occurrence."""

    raw: str  # Full matched text, brackets included
    target: str
    section: str | None = None
    alias: str | None = None
    position: LinkPosition


class BacklinkEntry(BaseModel):
    """A note that links to some target note."""

    note_id: str
    note_path: str
    note_title: str
    alias: str | None = None  # Display alias used on the first link
    context: str | None = None  # Surrounding text, only when requested


class DanglingSource(BaseModel):
    """A note mentioning a dangling target, with its mention count."""

    note_id: str
    note_path: str
    note_title: str
    count: int


class DanglingLink(BaseModel):
    """A link target that resolves to no note."""

    target: str
    sources: list[DanglingSource] = Field(default_factory=list)

    @property
    def total_occurrences(self) -> int:
        return sum(source.count for source in self.sources)


class AliasCollision(BaseModel):
    """Two different notes registered under the same lookup key."""

    key: str  # Normalized key
    previous_path: str  # Note that lost the key
    winning_path: str  # Note the key now resolves to


class NoteGraphStats(BaseModel):
    """Full analysis of a notes directory."""

    note_count: int = 0
    unique_connections: int = 0  # Distinct (source, target) note pairs
    total_mentions: int = 0  # Every wikilink occurrence, dangling included
    dangling_links: list[DanglingLink] = Field(default_factory=list)
    orphan_notes: list[str] = Field(default_factory=list)  # Paths
    backlinks: dict[str, list[BacklinkEntry]] = Field(default_factory=dict)  # title -> sources
    forward_links: dict[str, list[str]] = Field(default_factory=dict)  # path -> target titles
    note_metadata: list[NoteMetadata] = Field(default_factory=list)
    alias_collisions: list[AliasCollision] = Field(default_factory=list)


class QuickNoteStats(BaseModel):
    """Counts only, for status bars."""

    note_count: int
    connection_count: int
    dangling_count: int
    orphan_count: int


class CacheEntry(BaseModel):
    """A cached value with its creation time."""

    data: Any
    created_at: float
    hash: str | None = None


class CacheStats(BaseModel):
    """Snapshot of cache contents, for debugging."""

    size: int
    keys: list[str] = Field(default_factory=list)
    oldest_age: float | None = None  # Seconds


class SimilarityScore(BaseModel):
    """Composite string similarity with its components."""

    score: float
    jaro_winkler: float
    ngram: float
    token_overlap: float


class SimilarLinkSource(BaseModel):
    note_path: str
    note_title: str
    count: int


class SimilarLinkMember(BaseModel):
    """One spelling inside a cluster."""

    target: str
    similarity: float  # Similarity to the representative (1.0 for itself)
    sources: list[SimilarLinkSource] = Field(default_factory=list)

    @property
    def total_occurrences(self) -> int:
        return sum(source.count for source in self.sources)


class SimilarLinkCluster(BaseModel):
    """Dangling targets that look like spellings of one concept."""

    id: str
    representative_target: str
    members: list[SimilarLinkMember] = Field(default_factory=list)
    total_occurrences: int = 0
    average_similarity: float = 1.0


class HubNode(BaseModel):
    """A note holding a large share of all backlinks."""

    note_id: str
    title: str
    path: str
    backlink_count: int
    percentage: float  # Share of total backlinks (0-1)


class GraphMetrics(BaseModel):
    avg_backlinks_per_note: float = 0.0
    max_backlinks_per_note: int = 0
    max_backlinks_note_title: str = ""
    notes_with_no_backlinks: int = 0
    no_backlinks_percentage: float = 0.0  # 0-1
    notes_with_no_outlinks: int = 0
    no_outlinks_percentage: float = 0.0  # 0-1
    orphan_notes: int = 0
    orphan_percentage: float = 0.0  # 0-1
    graph_density: float = 0.0  # Unique connections per note


class GraphAnomalies(BaseModel):
    hub_nodes: list[HubNode] = Field(default_factory=list)
    suspicious_auto_links: list[str] = Field(default_factory=list)
    alias_collisions: list[AliasCollision] = Field(default_factory=list)


class HealthReport(BaseModel):
    """Graph quality summary with a 0-100 score."""

    total_notes: int
    total_wikilinks: int
    resolved_links: int
    resolved_percentage: float
    dangling_links: list[DanglingLink] = Field(default_factory=list)
    dangling_count: int = 0
    graph_metrics: GraphMetrics
    anomalies: GraphAnomalies
    recommendations: list[str] = Field(default_factory=list)
    health_score: int
    status: Literal["healthy", "warning", "critical"]


class PageRankResult(BaseModel):
    scores: dict[str, float] = Field(default_factory=dict)  # path -> score, max normalized to 1
    iterations: int = 0  # Iteration limit given to the solver
    converged: bool = False


class MergeLinkRequest(BaseModel):
    """Rewrite every link to one of old_targets so it points at new_target."""

    old_targets: list[str]
    new_target: str
    preserve_as_alias: bool = True  # Keep the old spelling visible as |alias


class MergeLinkResult(BaseModel):
    files_modified: int = 0
    links_replaced: int = 0
    modified_files: list[str] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)  # path -> message


class MergePreviewMatch(BaseModel):
    original: str
    replaced: str
    line: int  # 1-indexed


class MergePreview(BaseModel):
    file_path: str
    matches: list[MergePreviewMatch] = Field(default_factory=list)
