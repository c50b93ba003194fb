from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    queue_name: str = Field("", validation_alias="QUEUE_NAME")
    # A pre-configured URL skips the startup lookup entirely.
    queue_url: str = Field("", validation_alias="QUEUE_URL")
    queue_owner_account_id: str = Field("", validation_alias="QUEUE_OWNER_ACCOUNT_ID")

    aws_region: str = Field("us-east-1", validation_alias="AWS_REGION")
    sqs_endpoint_url: str = Field("", validation_alias="SQS_ENDPOINT_URL")
    aws_access_key_id: str = Field("", validation_alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: str = Field("", validation_alias="AWS_SECRET_ACCESS_KEY")

    max_number_of_messages: int = Field(10, ge=1, le=10, validation_alias="MAX_NUMBER_OF_MESSAGES")
    wait_time_seconds: int = Field(20, ge=0, le=20, validation_alias="WAIT_TIME_SECONDS")
    message_attribute_names: list[str] = Field(
        default_factory=lambda: ["All"],
        validation_alias="MESSAGE_ATTRIBUTE_NAMES",
    )

    transport_backend: str = Field("sqs", validation_alias="TRANSPORT_BACKEND")
    handlers_module: str = Field("", validation_alias="HANDLERS_MODULE")

    initial_backoff_seconds: float = Field(1.0, validation_alias="INITIAL_BACKOFF_SECONDS")
    max_backoff_seconds: float = Field(30.0, validation_alias="MAX_BACKOFF_SECONDS")
    backoff_multiplier: float = Field(2.0, validation_alias="BACKOFF_MULTIPLIER")
    max_connection_attempts: int = Field(5, ge=1, validation_alias="MAX_CONNECTION_ATTEMPTS")

    shutdown_grace_seconds: float = Field(30.0, ge=0, validation_alias="SHUTDOWN_GRACE_SECONDS")

    @model_validator(mode="after")
    def _require_queue(self) -> "Settings":
        if not self.queue_url.strip() and not self.queue_name.strip():
            raise ValueError("either QUEUE_URL or QUEUE_NAME must be set")
        return self
