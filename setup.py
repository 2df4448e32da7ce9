#!/usr/bin/env python
"""
COW Movement Analytics Setup
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="cow-analytics",
    version="1.0.0",
    description="Cell-on-wheels movement ingestion and utilization analytics",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["cow_analytics", "cow_analytics.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Framework :: FastAPI",
        "Topic :: Scientific/Engineering :: Information Analysis",
    ],
    python_requires=">=3.11",
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "httpx>=0.25.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "cow-analytics=cow_analytics.cli:main",
        ],
    },
    include_package_data=True,
    zip_safe=False,
    keywords=[
        "telecom",
        "analytics",
        "fastapi",
        "polars",
        "data-pipeline",
        "etl",
    ],
)
