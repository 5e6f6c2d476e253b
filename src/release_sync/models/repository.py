"""Repository identity."""

from __future__ import annotations

from pydantic import BaseModel

from ..exceptions import ConfigError


class RepositoryIdentity(BaseModel):
    """An ``owner/name`` pair identifying a GitHub repository."""

    model_config = {"frozen": True}

    owner: str
    name: str

    @classmethod
    def parse(cls, value: str) -> RepositoryIdentity:
        parts = value.strip().split("/")
        if len(parts) != 2 or not all(p.strip() for p in parts):
            msg = (
                f"Invalid repository {value!r}. Please provide 'source' or 'destination' "
                "input in the format 'owner/repo'."
            )
            raise ConfigError(msg)
        owner, name = (p.strip() for p in parts)
        return cls(owner=owner, name=name)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def __str__(self) -> str:
        return self.full_name
