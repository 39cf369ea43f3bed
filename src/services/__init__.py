from src.services import (
    expansion_service,
    generation_service,
    instance_service,
    site_service,
    template_service,
    triggered_service,
)


__all__ = [
    "expansion_service",
    "generation_service",
    "instance_service",
    "site_service",
    "template_service",
    "triggered_service",
]
