from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

TIME_OF_DAY_OPTIONS = ("Morning", "Afternoon", "Evening", "Bedtime")


class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str
    id: str | None = None


class ChatOptions(BaseModel):
    persona: Literal["general_med", "glp1"]
    includeHistory: bool = True


class ChatRequest(BaseModel):
    messages: list[ChatMessage] = Field(min_length=1)
    data: ChatOptions


class Medication(BaseModel):
    name: str
    dosage: str
    frequency: str
    timeOfDay: list[str]
    notes: str | None = None


class AnalysisRequest(BaseModel):
    type: Literal["analysis_request"]
    image: str = Field(min_length=1)
    medications: list[Medication] | None = None
    timingContext: str | None = None


class CalculatorOptions(BaseModel):
    maxTokens: int | None = None
    temperature: float | None = None
    medications: list[Medication] | None = None


class CalculatorRequest(BaseModel):
    messages: list[ChatMessage] = Field(min_length=1)
    body: CalculatorOptions | None = None


class MealComparisonPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    beforeImage: str | None = None
    afterImage: str | None = None


class SpeechRequest(BaseModel):
    text: str
