# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Core utilities and shared modules for flowgate.

This package contains:
- config: Configuration management
- errors: Custom exceptions
- logging: Structured logging
"""

from flowgate.core.config import get_config, Config
from flowgate.core.errors import FlowgateError, NotFoundError, ValidationError
from flowgate.core.logging import get_logger

__all__ = [
    "get_config",
    "Config",
    "FlowgateError",
    "NotFoundError",
    "ValidationError",
    "get_logger",
]
