"""
Rapid Rescue server: jerk detection, safety-check countdown and emergency escalation.

Loads layered configuration, opens the incident database and serves the
JSON API that device clients use to stream motion samples and locations.

Usage:
    python src/main.py --config config/config.yaml

Arguments:
    --config: Path to configuration file
    --host: Override server.host
    --port: Override server.port
"""

import argparse
import logging
import os
import sys
from typing import Any, Dict, Optional, Tuple

import uvicorn
import yaml

from models.config import Config
from ops.logging import VALID_LOG_LEVELS, setup_logging
from runtime.context import build_context
from storage.database import Database
from web.app import create_app


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def _read_yaml(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        config_dir = os.path.dirname(config_path)
        merged = _read_yaml(os.path.join(config_dir, "default.yaml"))

        local_overrides_path = os.path.join(config_dir, "config.yaml")
        merged = _deep_merge(merged, _read_yaml(local_overrides_path))

        if os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            merged = _deep_merge(merged, _read_yaml(config_path))

        return merged
    except (OSError, yaml.YAMLError) as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['server', 'storage', 'hospital_lookup', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    server = config.get('server', {}) or {}
    port = server.get('port', 3000)
    if not isinstance(port, int) or isinstance(port, bool) or not (0 < port < 65536):
        return False, "server.port must be an integer between 1 and 65535"
    if 'cors_origins' in server and not isinstance(server['cors_origins'], list):
        return False, "server.cors_origins must be a list of origins"
    if 'session_idle_timeout_s' in server:
        idle = server['session_idle_timeout_s']
        if not _is_number(idle) or idle <= 0:
            return False, "server.session_idle_timeout_s must be a positive number"

    storage = config.get('storage', {}) or {}
    if 'local_database_path' not in storage:
        return False, "Missing storage.local_database_path"
    if not isinstance(storage['local_database_path'], str) or not storage['local_database_path']:
        return False, "storage.local_database_path must be a non-empty string"

    location = config.get('location', {}) or {}
    for key in ('timeout_s', 'max_age_s'):
        if key in location and (not _is_number(location[key]) or location[key] <= 0):
            return False, f"location.{key} must be a positive number"
    has_lat = location.get('static_lat') is not None
    has_lng = location.get('static_lng') is not None
    if has_lat != has_lng:
        return False, "location.static_lat and location.static_lng must be set together"
    if has_lat:
        if not _is_number(location['static_lat']) or not (-90 <= location['static_lat'] <= 90):
            return False, "location.static_lat must be between -90 and 90"
        if not _is_number(location['static_lng']) or not (-180 <= location['static_lng'] <= 180):
            return False, "location.static_lng must be between -180 and 180"

    lookup = config.get('hospital_lookup', {}) or {}
    backend = lookup.get('backend', 'gemini')
    if backend not in ('gemini', 'static'):
        return False, "hospital_lookup.backend must be one of: gemini, static"
    if backend == 'static':
        hospitals = lookup.get('static_hospitals') or []
        if not isinstance(hospitals, list):
            return False, "hospital_lookup.static_hospitals must be a list"
        for h in hospitals:
            if not isinstance(h, dict) or not h.get('title') or not h.get('uri'):
                return False, "hospital_lookup.static_hospitals entries need a title and uri"

    escalation = config.get('escalation', {}) or {}
    if 'persist_retries' in escalation:
        retries = escalation['persist_retries']
        if not isinstance(retries, int) or isinstance(retries, bool) or retries <= 0:
            return False, "escalation.persist_retries must be a positive integer"
    for key in ('lookup_timeout_s', 'retry_delay_s'):
        if key in escalation and (not _is_number(escalation[key]) or escalation[key] < 0):
            return False, f"escalation.{key} must be a non-negative number"

    if config['log_level'] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='Rapid Rescue emergency detection server')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--host', type=str, default=None,
                        help='Override server.host')
    parser.add_argument('--port', type=int, default=None,
                        help='Override server.port')
    args = parser.parse_args()

    raw_config = load_config(args.config)

    is_valid, error_msg = validate_config(raw_config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    config = Config.from_dict(raw_config)
    if args.host:
        config.server.host = args.host
    if args.port:
        config.server.port = args.port

    setup_logging(config.log_path, config.log_level)
    logging.info("Starting Rapid Rescue")

    db = Database(config.storage.local_database_path)
    try:
        db.initialize()
        ctx = build_context(config, db)
        logging.info(f"Hospital lookup backend: {ctx.hospital_lookup.name}")

        uvicorn.run(
            create_app(ctx),
            host=config.server.host,
            port=config.server.port,
            log_level=config.log_level.lower(),
        )
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
    finally:
        db.close()
        logging.info("Rapid Rescue stopped")


if __name__ == "__main__":
    main()
