"""
Provider descriptors and the factory table used to build providers from
configuration.

A descriptor is `{"identifier": "dadata", "parameters": {"token": "..."}}`.
Adding a provider means adding it to PROVIDER_FACTORIES; the Aggregator
does not change.
"""

import logging
from typing import Any, Dict, Mapping, Type, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from geocode_aggregator.errors import ConfigurationError
from geocode_aggregator.providers.base import BaseProvider
from geocode_aggregator.providers.dadata import DaDataProvider
from geocode_aggregator.providers.nominatim import NominatimProvider

logger = logging.getLogger(__name__)

PROVIDER_FACTORIES: Dict[str, Type[BaseProvider]] = {
    "dadata": DaDataProvider,
    "nominatim": NominatimProvider,
}


class ProviderDescriptor(BaseModel):
    """One entry of the provider configuration list."""

    identifier: str = Field(..., min_length=1, description="Key in PROVIDER_FACTORIES")
    parameters: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("identifier")
    @classmethod
    def normalize_identifier(cls, value: str) -> str:
        return value.strip().lower()


DescriptorLike = Union[ProviderDescriptor, Mapping[str, Any]]


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "entry"
        parts.append(f"{location}: {item.get('msg')}")
    return "; ".join(parts)


def parse_descriptor(entry: DescriptorLike, index: int = 0) -> ProviderDescriptor:
    """Validate a raw descriptor mapping."""
    if isinstance(entry, ProviderDescriptor):
        return entry

    if not isinstance(entry, Mapping):
        raise ConfigurationError(
            f"Descriptor must be a mapping, got {type(entry).__name__}",
            entry=index,
        )

    try:
        return ProviderDescriptor.model_validate(dict(entry))
    except ValidationError as e:
        raise ConfigurationError(
            _format_validation_error(e), entry=index, identifier=str(entry.get("identifier", ""))
        ) from e


def build_provider(entry: DescriptorLike, index: int = 0) -> BaseProvider:
    """
    Build the concrete provider a descriptor names.

    Raises:
        ConfigurationError: unknown identifier, missing or unexpected parameters
    """
    descriptor = parse_descriptor(entry, index)

    provider_class = PROVIDER_FACTORIES.get(descriptor.identifier)
    if provider_class is None:
        raise ConfigurationError(
            f"Unknown provider. Choose from: {list(PROVIDER_FACTORIES.keys())}",
            entry=index,
            identifier=descriptor.identifier,
        )

    parameters_model = getattr(provider_class, "parameters_model", None)
    parameters = descriptor.parameters
    if parameters_model is not None:
        try:
            parameters = parameters_model.model_validate(parameters).model_dump(exclude_none=True)
        except ValidationError as e:
            raise ConfigurationError(
                _format_validation_error(e), entry=index, identifier=descriptor.identifier
            ) from e

    try:
        provider = provider_class(**parameters)
    except TypeError as e:
        raise ConfigurationError(str(e), entry=index, identifier=descriptor.identifier) from e

    logger.debug(f"Built provider {provider.name} from entry #{index}")
    return provider
