"""Process and network connection snapshot models."""

from pydantic import BaseModel, Field

PROCESS_FIELDS: tuple[str, ...] = (
    "Timestamp",
    "PID",
    "PPID",
    "Name",
    "Path",
    "CommandLine",
    "User",
    "Started",
)

CONNECTION_FIELDS: tuple[str, ...] = (
    "Timestamp",
    "LocalAddress",
    "LocalPort",
    "RemoteAddress",
    "RemotePort",
    "State",
    "PID",
    "ProcessName",
    "ProcessPath",
)


class ProcessRecord(BaseModel):
    """A running process at snapshot time."""

    timestamp: str = Field(..., alias="Timestamp")
    pid: int = Field(..., ge=0, alias="PID")
    ppid: int | None = Field(default=None, ge=0, alias="PPID")
    name: str = Field(default="", alias="Name")
    path: str = Field(default="", alias="Path")
    command_line: str = Field(default="", alias="CommandLine")
    user: str = Field(default="", alias="User")
    started: str = Field(default="", alias="Started", description="ISO-8601 create time")

    model_config = {"extra": "forbid", "frozen": True, "populate_by_name": True}

    def to_row(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class ConnectionRecord(BaseModel):
    """A network connection with its owning process, when resolvable."""

    timestamp: str = Field(..., alias="Timestamp")
    local_address: str = Field(default="", alias="LocalAddress")
    local_port: int | None = Field(default=None, alias="LocalPort")
    remote_address: str = Field(default="", alias="RemoteAddress")
    remote_port: int | None = Field(default=None, alias="RemotePort")
    state: str = Field(default="", alias="State")
    pid: int | None = Field(default=None, alias="PID")
    process_name: str = Field(default="", alias="ProcessName")
    process_path: str = Field(default="", alias="ProcessPath")

    model_config = {"extra": "forbid", "frozen": True, "populate_by_name": True}

    def to_row(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
