"""
Base class for the dmcourier pipeline stages.

``BaseService[ConfigT]`` provides what every stage shares: a typed Pydantic
configuration, a structured [Logger][dmcourier.core.logger.Logger] named
after the stage, and ``from_dict()`` / ``from_yaml()`` factories. Each
invocation runs every stage at most once, so there is no run loop here; the
[Courier][dmcourier.services.courier.Courier] sequences the stages.

See Also:
    [BaseServiceConfig][dmcourier.core.base_service.BaseServiceConfig]: Base
        configuration model for all stages.
    [LogConfig][dmcourier.core.logger.LogConfig]: Logging settings threaded
        explicitly into every stage.
"""

from typing import Any, ClassVar, Generic, Self, TypeVar, cast

from pydantic import BaseModel, ConfigDict

from dmcourier.models.constants import ServiceName

from .logger import LogConfig, Logger
from .yaml import load_yaml


class BaseServiceConfig(BaseModel):
    """Base configuration shared by all stages.

    Unknown keys are rejected so that a typo in a YAML file fails at startup
    instead of silently falling back to a default.
    """

    model_config = ConfigDict(extra="forbid")


ConfigT = TypeVar("ConfigT", bound=BaseServiceConfig)


class BaseService(Generic[ConfigT]):
    """Common plumbing for the pipeline stages.

    Subclasses set ``SERVICE_NAME`` (used as logger name) and
    ``CONFIG_CLASS`` (used by the factories and for defaults).

    Attributes:
        SERVICE_NAME: Unique stage identifier used in logging.
        CONFIG_CLASS: Pydantic model class for the stage configuration.
        _config: Typed stage configuration (defaults from ``CONFIG_CLASS``).
        _log_config: Logging settings the stage was created with.
        _logger: [Logger][dmcourier.core.logger.Logger] named after the stage.
    """

    SERVICE_NAME: ClassVar[ServiceName]
    CONFIG_CLASS: ClassVar[type[BaseModel]]

    def __init__(self, config: ConfigT | None = None, *, log_config: LogConfig | None = None) -> None:
        self._config: ConfigT = (
            config if config is not None else cast("ConfigT", self.CONFIG_CLASS())
        )
        self._log_config = log_config if log_config is not None else LogConfig()
        self._logger = Logger(self.SERVICE_NAME, json_output=self._log_config.json_output)

    @property
    def config(self) -> ConfigT:
        """The typed stage configuration (read-only)."""
        return self._config

    @classmethod
    def from_yaml(cls, config_path: str, **kwargs: Any) -> Self:
        """Create a stage from a YAML configuration file.

        Args:
            config_path: Path to the YAML file.
            **kwargs: Additional keyword arguments passed to the constructor.
        """
        return cls.from_dict(load_yaml(config_path), **kwargs)

    @classmethod
    def from_dict(cls, data: dict[str, Any], **kwargs: Any) -> Self:
        """Create a stage from a configuration dictionary.

        Args:
            data: Configuration dictionary parsed into ``CONFIG_CLASS``.
            **kwargs: Additional keyword arguments passed to the constructor.
        """
        config = cast("ConfigT", cls.CONFIG_CLASS(**data))
        return cls(config=config, **kwargs)
