"""
yttranscribe — setuptools build script.

Usage:
    # Development install with test tools:
    pip install -e ".[test]"

    # Run the service:
    yttranscribe-server
"""

from setuptools import setup, find_namespace_packages

APP_NAME = "yttranscribe"

setup(
    name=APP_NAME,
    version="1.0.0",
    description="Video-to-text API: platform captions first, speech-to-text fallback",
    packages=find_namespace_packages(include=["yttranscribe", "yttranscribe.*"]),
    py_modules=["main"],
    install_requires=[
        "requests>=2.28.0",
        "yt-dlp>=2024.1.0",
        "fastapi>=0.100.0",
        "uvicorn>=0.23.0",
        "python-multipart>=0.0.6",
        "python-dotenv>=1.0.0",
        "pydantic>=2.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "httpx>=0.24.0",
        ],
    },
    python_requires=">=3.10",
    entry_points={
        "console_scripts": [
            "yttranscribe-server = main:main",
        ],
    },
)
