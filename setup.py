"""Setup file for development installation."""

from setuptools import setup, find_packages

setup(
    name="prompt-assistant",
    version="0.1.0",
    description="Conversational prompt authoring with reusable templates",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "fastapi",
        "pydantic>=2",
        "structlog",
        "google-generativeai",
        "google-api-core",
        "prometheus-client",
        "opentelemetry-instrumentation-fastapi",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "httpx",
        ],
    },
)
