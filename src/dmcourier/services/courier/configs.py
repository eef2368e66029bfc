"""Courier configuration: one YAML document for the whole pipeline.

Examples:
    ```yaml
    discovery:
      timeout: 5.0
    prober:
      max_tasks: 20
      networks:
        clearnet:
          timeout: 1.0
        tor:
          enabled: true
    delivery:
      deadline: 5.0
    logging:
      level: INFO
    ```
"""

from __future__ import annotations

from pydantic import Field

from dmcourier.core.base_service import BaseServiceConfig
from dmcourier.core.logger import LogConfig
from dmcourier.services.delivery.configs import DeliveryConfig
from dmcourier.services.discovery.configs import DiscoveryConfig
from dmcourier.services.prober.configs import ProberConfig


class CourierConfig(BaseServiceConfig):
    """Configuration of every pipeline stage plus logging.

    Attributes:
        discovery: [DiscoveryConfig][dmcourier.services.discovery.DiscoveryConfig].
        prober: [ProberConfig][dmcourier.services.prober.ProberConfig].
        delivery: [DeliveryConfig][dmcourier.services.delivery.DeliveryConfig].
        logging: [LogConfig][dmcourier.core.logger.LogConfig], applied once
            by the CLI at startup.
    """

    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    prober: ProberConfig = Field(default_factory=ProberConfig)
    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)
    logging: LogConfig = Field(default_factory=LogConfig)
