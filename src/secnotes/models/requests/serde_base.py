from pydantic import BaseModel, ConfigDict


class SerdeBase(BaseModel):
    """Base for every model crossing the wire: unknown keys are an error."""

    model_config = ConfigDict(extra="forbid")
