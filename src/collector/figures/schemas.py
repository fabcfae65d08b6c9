"""Pydantic models for collection figures."""

import datetime

from pydantic import BaseModel, Field


class CompanyRole(BaseModel):
    """A company credited on a figure, e.g. its manufacturer or distributor."""

    company_name: str = ""
    role_name: str = ""


class ArtistRole(BaseModel):
    """An artist credited on a figure, e.g. its sculptor or illustrator."""

    artist_name: str = ""
    role_name: str = ""


class Release(BaseModel):
    """One (re)release of a figure."""

    date: datetime.date | None = None
    barcode: str | None = Field(default=None, description="JAN/EAN barcode")
    variant: str | None = None
    is_rerelease: bool = False


def derive_manufacturer(company_roles: list[CompanyRole]) -> str | None:
    """Pick the manufacturer name from a list of company credits.

    Args:
        company_roles: Company credits in their stored order.

    Returns:
        The first company credited with the "Manufacturer" role, otherwise
        the first company listed, or None when there are no credits.
    """
    if not company_roles:
        return None
    for role in company_roles:
        if role.role_name.lower() == "manufacturer" and role.company_name:
            return role.company_name
    return company_roles[0].company_name or None


class Figure(BaseModel):
    """A figure owned by a single user.

    Only the fields that take part in search are modelled here; pricing,
    condition and ownership-status fields live with the CRUD layer.

    Attributes:
        id: Figure identifier.
        owner_id: Identifier of the owning user.
        name: Figure name.
        manufacturer: Legacy manufacturer field, may be empty.
        mfc_title: Alternate title from the MFC catalog.
        location: Legacy storage location.
        storage_detail: Legacy storage detail (shelf, drawer).
        box_number: Legacy alias of storage_detail.
        tags: Bare tags or ``group:value`` pairs.
    """

    id: str
    owner_id: str
    name: str = Field(min_length=1)
    manufacturer: str = ""
    scale: str | None = None
    mfc_link: str | None = None
    mfc_id: int | None = None
    image_url: str | None = None

    mfc_title: str | None = None
    origin: str | None = None
    version: str | None = None
    category: str | None = None
    classification: str | None = None
    materials: str | None = None

    location: str | None = None
    storage_detail: str | None = None
    box_number: str | None = None

    company_roles: list[CompanyRole] = Field(default_factory=list)
    artist_roles: list[ArtistRole] = Field(default_factory=list)
    releases: list[Release] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)

    @property
    def display_manufacturer(self) -> str:
        """Manufacturer as shown to users, derived from credits when unset."""
        if self.manufacturer:
            return self.manufacturer
        return derive_manufacturer(self.company_roles) or ""

    def tag_values(self, group: str) -> list[str]:
        """Return the values of every ``group:value`` tag in the given group."""
        prefix = f"{group.lower()}:"
        return [tag[len(prefix):] for tag in self.tags if tag.lower().startswith(prefix)]
