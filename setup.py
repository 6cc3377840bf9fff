# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Setup configuration for flowgate workflow execution core
"""

from setuptools import setup, find_packages

setup(
    name="flowgate",
    version="0.1.0",
    description="Event-driven workflow execution with concurrent levels and human approval gates",
    author="adcl.io",
    packages=find_packages(exclude=["tests*"]),
    python_requires=">=3.9",
    install_requires=[
        "pydantic>=2.0.0",
        "httpx>=0.25.0",
        "PyYAML>=6.0",
        "openai>=1.45.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ]
    },
)
