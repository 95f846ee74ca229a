"""
Logging utilities for EWM Service.
Provides standardized logging configuration and transition records.
"""

import logging
import sys
from typing import Optional
from datetime import datetime


def setup_logging(level: str = "INFO", service_name: str = "ewm") -> logging.Logger:
    """
    Setup standardized logging for the service.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        service_name: Name of the service for log identification

    Returns:
        Configured root logger
    """
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, level.upper()))

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper()))

    formatter = logging.Formatter(
        f'[%(asctime)s] {service_name.upper()}: %(levelname)s - %(name)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


def log_state_transition(
    entity: str,
    entity_id: int,
    old_state: Optional[str],
    new_state: str,
    actor_id: Optional[int] = None,
    reason: Optional[str] = None
) -> None:
    """
    Log a lifecycle transition with standard format.

    Args:
        entity: Entity kind ("event" or "request")
        entity_id: Entity ID
        old_state: State before the transition, None on creation
        new_state: State after the transition
        actor_id: User who triggered the transition
        reason: Free text reason
    """
    logger = logging.getLogger(f"ewm.transitions.{entity}")
    log_data = {
        'entity': entity,
        'id': entity_id,
        'from': old_state,
        'to': new_state,
        'timestamp': datetime.now().isoformat()
    }

    if actor_id is not None:
        log_data['actor_id'] = actor_id

    if reason:
        log_data['reason'] = reason

    logger.info(f"State transition: {log_data}")
