# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Setup configuration for the DotPortion backend
"""

from setuptools import setup, find_packages

setup(
    name="dotportion",
    version="1.0.0",
    description="Accounts, access control and visual workflow execution for DotPortion",
    author="DotPortion",
    package_dir={"": "backend"},
    packages=find_packages(where="backend", include=["dotportion", "dotportion.*"]),
    python_requires=">=3.10",
    install_requires=[
        "fastapi>=0.104.0",
        "uvicorn[standard]>=0.24.0",
        "pydantic>=2.5.0",
        "httpx>=0.25.0",
        "pyyaml>=6.0",
        "python-dotenv>=1.0.0",
        "aiofiles>=23.2.0",
        "PyJWT>=2.8.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ]
    },
)
