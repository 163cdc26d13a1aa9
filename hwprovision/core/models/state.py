"""
Configuration state models — what a domain wants and what wins.

A DesiredState is produced by one configuration domain. The precedence
merger folds several of them into a single MergedState, in which every
file path has exactly one winning writer.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ConfigDomain(str, Enum):
    """An independent source of configuration decisions."""

    GENERIC_DRIVER = "generic_driver"
    VENDOR_SPECIFIC = "vendor_specific"


class OutcomeKind(str, Enum):
    """Why a domain did not produce a desired state."""

    DETECTION_ABSENT = "detection_absent"          # no matching hardware
    UNSUPPORTED_HARDWARE = "unsupported_hardware"  # recognized, no mapping


class RepositoryDescriptor(BaseModel):
    """A third-party package repository and its signing key."""

    model_config = ConfigDict(frozen=True)

    name: str
    server: str
    description: str = ""
    key_id: str = ""
    key_url: str = ""   # fallback when the keyserver is unreachable


class AppendBlock(BaseModel):
    """A block appended to an existing file, guarded by a marker line.

    The block is appended only when ``marker`` does not already occur
    in the file, so reruns never duplicate it.
    """

    model_config = ConfigDict(frozen=True)

    marker: str
    block: str


class DesiredState(BaseModel):
    """The configuration one domain wants the host to converge to."""

    packages: set[str] = Field(default_factory=set)
    module_options: list[str] = Field(default_factory=list)
    services_to_enable: set[str] = Field(default_factory=set)
    services_if_present: set[str] = Field(default_factory=set)
    files_to_write: dict[str, str] = Field(default_factory=dict)
    file_appends: dict[str, AppendBlock] = Field(default_factory=dict)
    downloads: dict[str, str] = Field(default_factory=dict)       # path -> url
    supersedes: dict[str, set[str]] = Field(default_factory=dict)  # path -> obsolete paths
    repositories_required: set[RepositoryDescriptor] = Field(default_factory=set)
    advisories: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (
            self.packages
            or self.services_to_enable
            or self.services_if_present
            or self.files_to_write
            or self.file_appends
            or self.downloads
            or self.repositories_required
        )


class Skip(BaseModel):
    """A resolver outcome meaning "this domain contributes nothing"."""

    domain: ConfigDomain
    kind: OutcomeKind
    reason: str = ""


class FileArtifact(BaseModel):
    """The winning content for one path and the domain that owns it."""

    content: str
    domain: ConfigDomain


class SuppressedWrite(BaseModel):
    """A lower-priority write that lost to another domain."""

    path: str
    domain: ConfigDomain
    winner: ConfigDomain
    reason: str = ""   # "same path" or "superseded by <path>"


class MergedState(BaseModel):
    """One authoritative desired state after precedence resolution."""

    packages: set[str] = Field(default_factory=set)
    services_to_enable: set[str] = Field(default_factory=set)
    services_if_present: set[str] = Field(default_factory=set)
    repositories_required: set[RepositoryDescriptor] = Field(default_factory=set)
    files: dict[str, FileArtifact] = Field(default_factory=dict)
    files_to_remove: set[str] = Field(default_factory=set)
    file_appends: dict[str, AppendBlock] = Field(default_factory=dict)
    downloads: dict[str, str] = Field(default_factory=dict)
    advisories: list[str] = Field(default_factory=list)
    suppressed: list[SuppressedWrite] = Field(default_factory=list)
    domains: list[ConfigDomain] = Field(default_factory=list)

    def content_for(self, path: str) -> str | None:
        """Winning content for a path, or None if nothing writes it."""
        artifact = self.files.get(path)
        return artifact.content if artifact else None

    def to_dict(self) -> dict:
        return {
            "domains": [d.value for d in self.domains],
            "packages": sorted(self.packages),
            "repositories": sorted(r.name for r in self.repositories_required),
            "services": sorted(self.services_to_enable),
            "services_if_present": sorted(self.services_if_present),
            "files": {
                path: {"domain": a.domain.value, "content": a.content}
                for path, a in sorted(self.files.items())
            },
            "files_to_remove": sorted(self.files_to_remove),
            "appends": {
                path: {"marker": b.marker} for path, b in sorted(self.file_appends.items())
            },
            "downloads": dict(sorted(self.downloads.items())),
            "suppressed": [s.model_dump(mode="json") for s in self.suppressed],
            "advisories": list(self.advisories),
        }
