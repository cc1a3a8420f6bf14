from pydantic import field_validator
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    # Path to the kubeconfig file
    # Empty: $KUBECONFIG or ~/.kube/config (in-cluster configuration is tried first)
    kubeconfig: Optional[str] = None

    # Namespace of the Kafka cluster and of the proxy
    # Empty: namespace of the current kubeconfig context
    namespace: Optional[str] = None

    # Strimzi Kafka cluster to expose
    cluster_name: str = "my-cluster"

    # Listener to expose - empty means the first listener without TLS encryption
    listener_name: Optional[str] = None

    # Local bootstrap port; node N is exposed on starting_port + N + 1
    starting_port: int = 50000

    # ==========================================================================
    # Proxy Settings
    # ==========================================================================
    # Name of the proxy Pod and ConfigMap
    proxy_name: str = "kekspose"

    # Kroxylicious build used for the proxy Pod
    proxy_image: str = "quay.io/kroxylicious/kroxylicious-developer:0.4.0"

    # How long to wait for the proxy Pod to become ready
    readiness_timeout_seconds: float = 120
    readiness_poll_interval_seconds: float = 1

    # Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = "INFO"

    @field_validator("starting_port")
    @classmethod
    def _valid_port(cls, value: int) -> int:
        if not 1 <= value <= 65535:
            raise ValueError(f"starting port {value} is outside of the range 1-65535")
        return value

    @field_validator("readiness_timeout_seconds", "readiness_poll_interval_seconds")
    @classmethod
    def _positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    class Config:
        env_prefix = "KEKSPOSE_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore unrelated variables from .env file
        case_sensitive = False


@lru_cache()
def get_settings():
    return Settings()
