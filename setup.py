"""
Setup configuration for creative-copycat package.
"""

from setuptools import setup, find_packages

setup(
    name="creative-copycat",
    version="0.1.0",
    description="Mask-based generation of branded variations of competitor ad creatives",
    packages=find_packages(include=["copycat", "copycat.*"]),
    python_requires=">=3.9",
    install_requires=[
        "supabase>=2.0",
        "pydantic>=2.5",
        "pydantic-graph>=0.4,<2",
        "python-dotenv>=1.0",
        "openai>=1.30",
        "httpx>=0.25",
        "Pillow>=10.0",
        "tenacity>=8.2",
        "logfire>=1.0",
        "fastapi>=0.110",
        "slowapi>=0.1.9",
        "uvicorn>=0.27",
        "click>=8.1",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "copycat=copycat.cli.main:cli",
        ],
    },
)
