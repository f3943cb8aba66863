from pydantic import BaseModel, Field


class MemoryUsage(BaseModel):
    maxRss: int = Field(description="Peak resident set size of the process, in bytes.")


class HealthResponse(BaseModel):
    status: str = "healthy"
    timestamp: str
    uptime: float
    environment: str
    version: str
    database: str
    databaseCode: int
    memory: MemoryUsage
    pythonVersion: str


class BannerResponse(BaseModel):
    message: str
    version: str
    status: str = "running"
    timestamp: str
    environment: str
    database: str
    endpoints: dict[str, str]


class DatabaseDiagnostics(BaseModel):
    success: bool
    dbState: str
    dbStateCode: int | None = None
    environment: str | None = None
    dbUri: str | None = None
    timestamp: str | None = None
    error: str | None = None


class EnvironmentDiagnostics(BaseModel):
    nodeEnv: str
    port: int
    dbUriConfigured: bool
    corsOrigin: str | None
    jwtSecret: str
    superAdmin: str


class DebugConfig(BaseModel):
    environment: str
    port: int
    nodeEnv: str
    corsOrigin: str | None
