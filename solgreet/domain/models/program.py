"""Persisted record of a deployed hello world program."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator
from solders.pubkey import Pubkey


class DeployedProgramRecord(BaseModel):
    """Where the program and its greeted account live on a cluster.

    Serialized with the camelCase keys used by the on-disk config document:
    ``{"url": ..., "programId": ..., "greetedPubkey": ...}``.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    url: str
    program_id: str = Field(alias="programId")
    greeted_pubkey: str = Field(alias="greetedPubkey")

    @field_validator("program_id", "greeted_pubkey")
    @classmethod
    def _check_pubkey(cls, value: str) -> str:
        try:
            Pubkey.from_string(value)
        except ValueError as exc:
            raise ValueError(f"not a valid base58 public key: {value!r}") from exc
        return value

    @classmethod
    def from_pubkeys(
        cls, url: str, program_id: Pubkey, greeted_pubkey: Pubkey
    ) -> "DeployedProgramRecord":
        return cls(
            url=url, program_id=str(program_id), greeted_pubkey=str(greeted_pubkey)
        )

    @property
    def program_pubkey(self) -> Pubkey:
        return Pubkey.from_string(self.program_id)

    @property
    def greeted(self) -> Pubkey:
        return Pubkey.from_string(self.greeted_pubkey)

    def to_document(self) -> dict[str, str]:
        """Return the JSON document stored in the config store."""
        return self.model_dump(by_alias=True)
