"""Pydantic models for run-summary reporting.

Each pipeline stage returns its own report; nothing is accumulated in globals.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ReportModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AssignmentReport(ReportModel):
    category: str
    total: int = 0
    rejected: int = 0  # missing or non-numeric coordinates
    assigned: int = 0
    unassigned: int = 0  # inside no neighbourhood


class CatalogReport(ReportModel):
    neighbourhoods: int = 0
    zones_requested: int = 0
    zones_resolved: int = 0
    empty_neighbourhoods: list[str] = []


class RunSummary(ReportModel):
    catalog: CatalogReport
    assignments: list[AssignmentReport] = []
    missing_datasets: list[str] = []
    health_data_sampled: bool = False
