from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TenantCredential(BaseModel):
    account_id: str = Field(alias="accountId", min_length=1)
    bucket_name: str = Field(alias="bucketName", min_length=1)
    access_key_id: str = Field(alias="accessKeyId", min_length=1)
    secret_access_key: str = Field(alias="secretAccessKey", min_length=1, repr=False)

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        extra="ignore",
        str_strip_whitespace=True,
    )

    def endpoint_host(self, storage_host: str) -> str:
        return f"{self.account_id}.{storage_host}"


__all__ = ["TenantCredential"]
