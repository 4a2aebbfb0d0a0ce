"""Configuration management."""

from typing import Literal, Tuple

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger()


class GeneratorSettings(BaseModel):
    """
    Tunables of the chunk generator.

    Passed explicitly to each generator; shared read-only between threads.
    """

    model_config = ConfigDict(frozen=True)

    blend_radius: float = Field(default=32.0, gt=0, description="Biome blend distance in blocks")
    group_size: int = Field(default=16, ge=2, description="Decorator group edge length in blocks")
    sea_level: int = Field(default=0, description="Absolute y below which oceans fill with water")
    biome_scale: float = Field(default=256.0, gt=0, description="Blocks per unit of climate and surface noise")
    site_jitter_scale: float = Field(
        default=0.73, gt=0, description="Offset-noise distance between neighboring partition sites"
    )
    climate_input_range: Tuple[float, float] = Field(
        default=(-1.5, 1.5), description="Raw climate noise range mapped onto the output range"
    )
    climate_output_range: Tuple[float, float] = Field(
        default=(0.0, 5.0), description="Range of elevation, temperature and moisture values"
    )
    decorator_neighborhood_chunks: int = Field(
        default=8, ge=1, description="Width in chunks of the area decorator groups are taken from"
    )

    @field_validator("group_size")
    @classmethod
    def _even_group(cls, value: int) -> int:
        if value % 2:
            raise ValueError("group_size must be even")
        return value

    @field_validator("climate_input_range", "climate_output_range")
    @classmethod
    def _ordered(cls, value: Tuple[float, float]) -> Tuple[float, float]:
        if value[0] >= value[1]:
            raise ValueError(f"range {value} must be increasing")
        return value

    @model_validator(mode="after")
    def _warn_lattice_jitter(self) -> "GeneratorSettings":
        if float(self.site_jitter_scale).is_integer():
            logger.warning(
                "integral site_jitter_scale samples the offset noise on its lattice; "
                "partition sites may line up and break blending",
                site_jitter_scale=self.site_jitter_scale,
            )
        return self


class Settings(BaseSettings):
    """Application settings pulled from environment variables."""

    model_config = SettingsConfigDict(env_prefix="VOXGEN_", env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "console"] = Field(default="json", description="Logging format")

    # World Generation Configuration
    default_seed: int = Field(default=0, description="World seed used when none is given")
    generator: GeneratorSettings = Field(default_factory=GeneratorSettings)


settings = Settings()
