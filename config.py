"""Application configuration management for the page capture CLI."""


import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from dotenv import load_dotenv

ENV_FILE: Final[str] = ".env"
DEFAULT_API_URL: Final[str] = "http://localhost:3000"
DEFAULT_OCR_MODEL: Final[str] = "qwen-vl-ocr"
DEFAULT_MAX_SIDE: Final[int] = 2048
DEFAULT_TIMEOUT: Final[float] = 60.0
DEFAULT_LOG_LEVEL: Final[int] = logging.INFO

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class JournalApiSettings:
	"""Connection details for the journal backend."""
	base_url: str = DEFAULT_API_URL
	user_id: str | None = None
	timeout: float = DEFAULT_TIMEOUT


@dataclass(frozen=True)
class DashScopeCredentials:
	"""Container for DashScope credential details."""
	api_key: str
	model: str = DEFAULT_OCR_MODEL


@dataclass(frozen=True)
class CaptureDefaults:
	"""Default normalization and device settings."""
	max_side: int = DEFAULT_MAX_SIDE
	grayscale: bool = False
	camera_device: int | str = 0


@dataclass(frozen=True)
class AppConfig:
	"""Aggregate configuration for the CLI runtime."""
	journal_api: JournalApiSettings
	dashscope: DashScopeCredentials | None
	capture: CaptureDefaults
	output_dir: Path
	log_level: int = DEFAULT_LOG_LEVEL


def load_config() -> AppConfig:
	"""Load environment-based configuration values.

	Returns:
		AppConfig: Parsed configuration with credentials when available.
	"""
	load_dotenv(ENV_FILE)
	output_dir = Path(os.getenv("CAPTURE_OUTPUT_DIR", "outputs")).resolve()

	return AppConfig(
		journal_api=_load_journal_api_settings(),
		dashscope=_load_dashscope_credentials(),
		capture=_load_capture_defaults(),
		output_dir=output_dir,
		log_level=_parse_log_level(os.getenv("CAPTURE_LOG_LEVEL", "INFO")),
	)


def configure_logging(level: int = DEFAULT_LOG_LEVEL) -> None:
	"""Configure the root logger for the application."""
	logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def _load_journal_api_settings() -> JournalApiSettings:
	base_url = os.getenv("JOURNAL_API_URL", DEFAULT_API_URL).rstrip("/")
	user_id = os.getenv("JOURNAL_USER_ID") or None
	timeout = float(os.getenv("JOURNAL_HTTP_TIMEOUT", str(DEFAULT_TIMEOUT)))
	return JournalApiSettings(base_url=base_url, user_id=user_id, timeout=timeout)


def _load_dashscope_credentials() -> DashScopeCredentials | None:
	"""Load DashScope credentials from the environment if available."""
	api_key = os.getenv("DASHSCOPE_API_KEY")
	if api_key:
		return DashScopeCredentials(api_key=api_key, model=os.getenv("OCR_MODEL_ID", DEFAULT_OCR_MODEL))
	return None


def _load_capture_defaults() -> CaptureDefaults:
	max_side = int(os.getenv("CAPTURE_MAX_SIDE", str(DEFAULT_MAX_SIDE)))
	if max_side < 1:
		raise ValueError(f"CAPTURE_MAX_SIDE must be positive, got {max_side}")
	grayscale = os.getenv("CAPTURE_GRAYSCALE", "").strip().lower() in _TRUTHY
	device = os.getenv("CAMERA_DEVICE", "0")
	camera_device: int | str = int(device) if device.isdigit() else device
	return CaptureDefaults(max_side=max_side, grayscale=grayscale, camera_device=camera_device)


def _parse_log_level(name: str) -> int:
	level = logging.getLevelName(name.strip().upper())
	return level if isinstance(level, int) else DEFAULT_LOG_LEVEL
