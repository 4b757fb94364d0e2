"""Pydantic schemas for the job-summary (JSON) input format.

Field names follow the export's camelCase keys via aliases. Every field has a
zero-value default so a summary with missing keys still validates; unknown
keys are ignored. A JSON ``null`` is treated like a missing key.
"""

from pydantic import BaseModel, Field, model_validator


class _ExportModel(BaseModel):
    model_config = {"populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: object) -> object:
        if data is None:
            return {}
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class ContainerDetail(_ExportModel):
    exit_code: int = Field(0, alias="exitCode")


class JobSummary(_ExportModel):
    job_id: str = Field("", alias="jobId")
    job_name: str = Field("", alias="jobName")
    created_at: int = Field(0, alias="createdAt")
    started_at: int = Field(0, alias="startedAt")
    stopped_at: int = Field(0, alias="stoppedAt")
    status: str = ""
    status_reason: str = Field("", alias="statusReason")
    container: ContainerDetail = Field(default_factory=ContainerDetail)


class StatusesFile(_ExportModel):
    job_summary_list: list[JobSummary] = Field(default_factory=list, alias="jobSummaryList")
