"""
Job document (de)serialization.

Job definitions travel as JSON documents (the contents of *.job files and
the HTTP create/update body). Keys are camelCase:

    {
        "name": "nightly-report",
        "group": "dirigible-defined",
        "clazz": "...", "handler": "...", "engine": "...",
        "description": "...", "expression": "0 0 2 * * ?",
        "singleton": false, "enabled": true,
        "parameters": [
            {"name": "limit", "type": "number", "defaultValue": "10",
             "choices": ["10", "20"], "description": "..."}
        ]
    }

Parsing forces the group to JOB_GROUP_DEFINED and stamps every parameter
with the enclosing job name.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .entities import JOB_GROUP_DEFINED, JobDefinition, JobParameterDefinition
from .errors import InvalidOperationError


class JobParameterDocument(BaseModel):
    """Serialized job parameter."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    type: str = "string"
    default_value: Optional[str] = Field(default=None, alias="defaultValue")
    choices: Optional[List[str]] = None
    description: Optional[str] = None


class JobDocument(BaseModel):
    """Serialized job definition."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    group: Optional[str] = None
    handler_class: Optional[str] = Field(default=None, alias="clazz")
    handler_ref: Optional[str] = Field(default=None, alias="handler")
    engine_type: Optional[str] = Field(default=None, alias="engine")
    description: Optional[str] = None
    schedule_expression: Optional[str] = Field(default=None, alias="expression")
    singleton: bool = False
    enabled: bool = True
    parameters: List[JobParameterDocument] = Field(default_factory=list)

    @classmethod
    def from_definition(cls, job: JobDefinition) -> "JobDocument":
        return cls(
            name=job.name,
            group=job.group,
            handler_class=job.handler_class,
            handler_ref=job.handler_ref,
            engine_type=job.engine_type,
            description=job.description,
            schedule_expression=job.schedule_expression,
            singleton=job.singleton,
            enabled=job.enabled,
            parameters=[
                JobParameterDocument(
                    name=parameter.name,
                    type=parameter.type,
                    default_value=parameter.default_value,
                    choices=parameter.choices,
                    description=parameter.description,
                )
                for parameter in job.parameters
            ],
        )

    def to_definition(self) -> JobDefinition:
        """Build a user-defined JobDefinition owning its parameters."""
        job = JobDefinition(
            name=self.name,
            group=JOB_GROUP_DEFINED,
            handler_class=self.handler_class,
            handler_ref=self.handler_ref,
            engine_type=self.engine_type,
            description=self.description,
            schedule_expression=self.schedule_expression,
            singleton=self.singleton,
            enabled=self.enabled,
        )
        job.set_parameters(
            [
                JobParameterDefinition(
                    name=parameter.name,
                    job_name=self.name,
                    type=parameter.type,
                    default_value=parameter.default_value,
                    choices=parameter.choices,
                    description=parameter.description,
                )
                for parameter in self.parameters
            ]
        )
        return job


def parse_job(content: str | bytes) -> JobDefinition:
    """
    Parse a job document.

    Raises:
        InvalidOperationError: If the document is not a valid job
    """
    try:
        document = JobDocument.model_validate_json(content)
    except ValidationError as e:
        raise InvalidOperationError(f"Invalid job document: {e}") from e
    return document.to_definition()


def serialize_job(job: JobDefinition) -> str:
    """Serialize a job definition and its parameters to JSON."""
    return JobDocument.from_definition(job).model_dump_json(by_alias=True, indent=2)
