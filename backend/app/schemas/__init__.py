"""Pydantic schemas for the inspection report API."""

from app.schemas.analysis import *
from app.schemas.inspection import *
from app.schemas.report import *
