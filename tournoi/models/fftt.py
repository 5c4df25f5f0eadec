"""FFTT Smartping payloads and the ranking record derived from them."""
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class FFTTJoueur(BaseModel):
    """Raw ``xml_joueur.php`` entry (French field names as sent by the API)."""

    model_config = ConfigDict(extra="ignore")

    licence: str
    nom: str = ""
    prenom: str = ""
    club: str = ""
    nclub: str = ""
    sexe: str = ""
    cat: str = ""
    point: str = ""
    echelon: Optional[str] = None
    place: Optional[str] = None

    @field_validator("licence", "nclub", "point", "echelon", "place", mode="before")
    @classmethod
    def number_as_text(cls, value: Any) -> Any:
        # Numeric fields sometimes arrive as JSON numbers
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class FFTTApiResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    liste: List[FFTTJoueur] = Field(default_factory=list)


class PlayerRanking(BaseModel):
    """Federation data for one license number."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    license_number: str
    first_name: str
    last_name: str
    club: str
    club_code: str
    points: int
    category: str
    gender: str
