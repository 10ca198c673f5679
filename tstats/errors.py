"""Exception hierarchy for the location/weather pipeline."""


class PipelineError(Exception):
    """Base class for errors that abort the pipeline."""

    kind = "pipeline"


class NetworkError(PipelineError):
    """Transport failure, non-2xx status or empty body from an outbound call."""

    kind = "network"


class WeatherError(NetworkError):
    """The forecast request failed or its body could not be decoded."""

    kind = "weather"


class DecodeError(PipelineError):
    """A response body was not valid JSON or did not match the expected schema."""

    kind = "decode"


class GeolocationError(PipelineError):
    """The geolocation provider answered with a status other than "success"."""

    kind = "geolocation"

    def __init__(self, status: str, message: str | None = None) -> None:
        self.status = status
        self.provider_message = message
        detail = f"geolocation API failed with status: {status}"
        if message:
            detail = f"{detail} ({message})"
        super().__init__(detail)


class CacheWriteWarning(UserWarning):
    """A cache file could not be persisted; the run continues without it."""
