# pylint: disable=missing-module-docstring
# ruff: noqa

from pathlib import Path

from setuptools import find_packages, setup


def read_long_description() -> str:
    """Return README contents for PyPI description."""
    readme_path = Path(__file__).with_name("README.md")
    return readme_path.read_text(encoding="utf-8") if readme_path.exists() else "Brand Pulse"


setup(
    name="brand-pulse",
    version="0.1.0",
    description="Brand mention sentiment, topic insights and creative generation pipeline",
    long_description=read_long_description(),
    long_description_content_type="text/markdown",
    python_requires=">=3.11",
    packages=find_packages(include=["pulse_engine", "fetchers", "analyzers", "generation_engine"]),
    include_package_data=True,
    install_requires=[
        "pydantic>=2.5",
        "httpx>=0.26",
        "pandas>=2.0",
        "openai>=1.30",
        "anthropic>=0.25",
        "python-dotenv>=1.0",
        "apify-client>=1.6",
        "vaderSentiment>=3.3.2",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "pulse-insights = pulse_engine.cli_entrypoints:insights",
            "pulse-refresh = pulse_engine.cli_entrypoints:refresh",
            "pulse-sessions = pulse_engine.cli_entrypoints:sessions",
        ]
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
