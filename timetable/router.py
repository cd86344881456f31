"""Shared router for timetable tool endpoints."""

from __future__ import annotations

from fastapi import APIRouter

timetable_router = APIRouter()
