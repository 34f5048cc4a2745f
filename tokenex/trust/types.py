"""Type definitions for trusted subject-token issuers."""

from pydantic import BaseModel, ConfigDict, model_validator


class TrustedIssuer(BaseModel):
    """An external identity provider whose tokens may be exchanged.

    The discovery location is fixed here at startup. Exactly one of
    ``jwks_uri`` or ``well_known_url`` must be set.
    """

    model_config = ConfigDict(frozen=True)

    issuer: str
    jwks_uri: str | None = None
    well_known_url: str | None = None

    @model_validator(mode="after")
    def _one_discovery_location(self) -> "TrustedIssuer":
        if bool(self.jwks_uri) == bool(self.well_known_url):
            raise ValueError(
                f"issuer {self.issuer!r} needs exactly one of jwks_uri or well_known_url"
            )
        return self
