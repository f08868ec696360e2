from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator


def _scalar_to_str(value: Any) -> Any:
    # Models sometimes emit 2 for "2 hours" or a numeric title
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


# Free text from the model; bare numbers are kept as their string form
ModelText = Annotated[str | None, BeforeValidator(_scalar_to_str)]


class GenerateRequest(BaseModel):
    """Trip parameters posted by the planner form."""

    model_config = ConfigDict(populate_by_name=True)

    # Optional here so a missing destination is reported as a 400, not a 422
    destination_city: str | None = Field(None, alias="destinationCity")
    total_budget: float | None = Field(None, alias="totalBudget")
    duration: int | None = Field(None, description="Trip length in days, 1 when omitted")
    selected_themes: list[str] | None = Field(None, alias="selectedThemes")
    stay_preference: str | None = Field(
        None,
        alias="stayPreference",
        description="UI label: 'Budget Hotel', 'Luxury Hotel', 'Airbnb' or 'No Preference'",
    )


class BudgetSummary(BaseModel):
    travel: int
    accommodation: int
    activities: int
    food: int
    total: float


class StayCandidate(BaseModel):
    """A stay proposed by the model, before Places enrichment."""

    name: str | None = None
    type: str | None = None
    area: str | None = None
    price_per_night: float | None = None


class ItineraryActivity(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: ModelText = None
    type: ModelText = Field(None, description="attraction | restaurant | hidden_gem")
    timeOfDay: ModelText = Field(None, description="Morning | Afternoon | Evening")
    shortDescription: ModelText = None
    estimatedDuration: ModelText = None
    entryFee: float | str | None = None
    costIncludedInBudget: float | str | None = None


class ItineraryDay(BaseModel):
    model_config = ConfigDict(extra="allow")

    day: int | str | None = None
    areaCovered: ModelText = None
    activities: list[ItineraryActivity] = Field(default_factory=list)
    dailyEstimatedSpend: float | str | None = None

    @field_validator("activities", mode="before")
    @classmethod
    def _null_activities(cls, value: Any) -> Any:
        return [] if value is None else value


class ItineraryPlan(BaseModel):
    model_config = ConfigDict(extra="allow")

    whyThisPlanWorks: ModelText = ""
    itinerary: list[ItineraryDay]


class GenerateResponse(BaseModel):
    # Extra top-level keys from the itinerary reply are passed through
    model_config = ConfigDict(extra="allow")

    budgetSummary: BudgetSummary
    stays: list[dict[str, Any]] = Field(default_factory=list)
    whyThisPlanWorks: str = ""
    itinerary: list[ItineraryDay] = Field(default_factory=list)
