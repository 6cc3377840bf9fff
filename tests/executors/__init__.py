# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Tests for the default node handlers.

External services are mocked with httpx.MockTransport and an OpenAI client double.
"""
