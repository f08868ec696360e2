"""
Shared service dependencies, built lazily and cached on app.state.
"""

from typing import Any

from fastapi import Request

from trip_planner.core.llm_provider import LLMProvider
from trip_planner.core.places_service import PlacesService
from trip_planner.core.repository import MongoRepo
from trip_planner.core.settings import Settings


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_repo(request: Request) -> MongoRepo:
    state = request.app.state
    if state.repo is None:
        state.repo = MongoRepo.from_settings(state.settings)
    return state.repo


def get_places_service(request: Request) -> PlacesService:
    state = request.app.state
    if state.places is None:
        state.places = PlacesService.from_settings(state.settings)
    return state.places


def get_llm(request: Request) -> Any:
    state = request.app.state
    if state.llm is None:
        settings: Settings = state.settings
        state.llm = LLMProvider(model=settings.generation_model, api_key=settings.gemini_api_key)
    return state.llm
