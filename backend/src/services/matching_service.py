"""
Physician matching proxy.

Forwards a patient's search criteria to the hosted language model through an
OpenAI-compatible chat-completions gateway and returns the physician list it
generates. Results are not cached, ranked or retried here.
"""

import json
import logging
from typing import Any, Dict, List, Literal, Optional

import openai
from openai import AsyncOpenAI
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core import config
from core.constants import MATCH_CHIEF_CONCERN_MAX_LENGTH, MATCH_LOCATION_MAX_LENGTH, MATCH_TEMPERATURE

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """You are a medical matching AI that helps patients find the best physicians.
Analyze the patient's needs and generate a list of 3-5 recommended physicians with detailed profiles.
Return ONLY valid JSON in this exact format:
{
  "physicians": [
    {
      "id": "unique-id",
      "name": "Dr. Full Name",
      "specialty": "Specialty Name",
      "rating": 4.8,
      "distance": "2.3 miles",
      "availability": "Tomorrow at 2 PM",
      "insuranceAccepted": true,
      "matchScore": 95,
      "practiceName": "Practice Name",
      "practiceAddress": "Full Address",
      "bio": "Detailed bio",
      "education": ["Degree from University"],
      "certifications": ["Board Certification"],
      "yearsExperience": 15
    }
  ]
}"""


class MatchingError(Exception):
    """Raised when the upstream model call or its response cannot be used."""


class PhysicianMatchRequest(BaseModel):
    """Search criteria submitted by a patient."""
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    chief_concern: str = Field(alias="chiefConcern", min_length=1, max_length=MATCH_CHIEF_CONCERN_MAX_LENGTH)
    specialty: Optional[str] = Field(default=None, max_length=100)
    location: str = Field(min_length=1, max_length=MATCH_LOCATION_MAX_LENGTH)
    insurance_provider: Optional[str] = Field(default=None, alias="insuranceProvider", max_length=100)
    urgency: Literal["routine", "soon", "urgent"]
    preferred_gender: Optional[str] = Field(default=None, alias="preferredGender", max_length=50)
    language_preference: Optional[str] = Field(default=None, alias="languagePreference", max_length=50)
    virtual_visit: bool = Field(default=False, alias="virtualVisit")
    accepting_new_patients: bool = Field(default=True, alias="acceptingNewPatients")


class Physician(BaseModel):
    """A generated physician candidate; unknown keys are dropped and missing ones default."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = ""
    name: str = ""
    specialty: str = ""
    rating: Optional[float] = None
    distance: Optional[str] = None
    availability: Optional[str] = None
    insurance_accepted: Optional[bool] = Field(default=None, alias="insuranceAccepted")
    match_score: Optional[float] = Field(default=None, alias="matchScore")
    practice_name: Optional[str] = Field(default=None, alias="practiceName")
    practice_address: Optional[str] = Field(default=None, alias="practiceAddress")
    bio: Optional[str] = None
    education: List[str] = Field(default_factory=list)
    certifications: List[str] = Field(default_factory=list)
    years_experience: Optional[int] = Field(default=None, alias="yearsExperience")

    @field_validator("id", "distance", "availability", mode="before")
    @classmethod
    def coerce_to_string(cls, v: Any) -> Any:
        if v is None or isinstance(v, str):
            return v
        return str(v)


def build_messages(request: PhysicianMatchRequest) -> List[Dict[str, str]]:
    """Build the chat messages for a match request."""
    user_prompt = f"""Patient Information:
Chief Concern: {request.chief_concern}
Preferred Specialty: {request.specialty or "Any"}
Location: {request.location}
Insurance: {request.insurance_provider or "Not specified"}
Urgency: {request.urgency}
Preferred Gender: {request.preferred_gender or "No preference"}
Language: {request.language_preference or "English"}
Virtual Visit Acceptable: {"Yes" if request.virtual_visit else "No"}
Accepting New Patients Only: {"Yes" if request.accepting_new_patients else "No"}

Generate realistic physician recommendations based on this information."""

    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]


def parse_physicians(content: str) -> List[Physician]:
    """
    Extract the physician list from a model reply.

    The reply may wrap the JSON object in prose or code fences, so the text
    from the first "{" to the last "}" is parsed.

    Raises:
        MatchingError: If no JSON object is found or it has no physician list
    """
    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end < start:
        raise MatchingError("Invalid JSON in AI response")

    try:
        data = json.loads(content[start:end + 1])
    except json.JSONDecodeError as e:
        raise MatchingError("Invalid JSON in AI response") from e

    raw_physicians = data.get("physicians") if isinstance(data, dict) else None
    if not isinstance(raw_physicians, list):
        raise MatchingError("AI response did not include a physician list")

    physicians: List[Physician] = []
    for entry in raw_physicians:
        if not isinstance(entry, dict):
            continue
        try:
            physicians.append(Physician.model_validate(entry))
        except ValidationError as e:
            logger.warning(f"Skipping malformed physician entry: {e.error_count()} errors")
    return physicians


class PhysicianMatchingService:
    """Calls the model gateway and parses its physician recommendations."""

    def _create_client(self) -> AsyncOpenAI:
        api_key = config.MODEL_GATEWAY_API_KEY
        if not api_key:
            raise MatchingError("MODEL_GATEWAY_API_KEY is not configured")
        return AsyncOpenAI(
            api_key=api_key,
            base_url=config.MODEL_GATEWAY_URL,
            timeout=config.MODEL_GATEWAY_TIMEOUT_SECONDS,
            max_retries=0,
        )

    async def match(self, request: PhysicianMatchRequest) -> List[Physician]:
        """
        Generate physician recommendations for a validated request.

        Raises:
            MatchingError: For a missing API key, transport or status errors,
                empty replies and unparseable JSON
        """
        client = self._create_client()
        try:
            completion = await client.chat.completions.create(
                model=config.MATCHING_MODEL,
                messages=build_messages(request),  # type: ignore[arg-type]
                temperature=MATCH_TEMPERATURE,
            )
        except openai.APIStatusError as e:
            logger.error(f"AI API error: {e.status_code}")
            raise MatchingError(f"AI API error: {e.status_code}") from e
        except openai.APIError as e:
            logger.error(f"AI API request failed: {e}")
            raise MatchingError(f"AI API request failed: {e}") from e
        finally:
            await client.close()

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise MatchingError("No content in AI response")

        physicians = parse_physicians(content)
        logger.info(f"Matched {len(physicians)} physicians (urgency={request.urgency})")
        return physicians


# Global instance
matching_service = PhysicianMatchingService()
