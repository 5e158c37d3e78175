#!/usr/bin/env python

from setuptools import setup

setup(
    name="quickstage",
    version="1.0.0",
    description="Static site hosting on wildcard subdomains backed by S3-compatible object storage",
    author="QuickStage developers",
    packages=["quickstage", "quickstage.api", "quickstage.sites", "quickstage.objectstorage"],
    include_package_data=True,
    zip_safe=False,
    keywords=["API", "hosting", "static sites"],
    classifiers=[
        "License :: OSI Approved :: MIT License",
        "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    ],
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "python-multipart",
        "python-dotenv",
        "httpx",
        "pydantic[email]>=2",
        "pydantic-settings",
        "aiobotocore",
        "types-aiobotocore-s3",
        "uvicorn",
    ],
    extras_require={
        "dev": [
            "pytest",
            "pytest-httpx",
            "anyio",
            "mypy",
            "flake8",
        ]
    },
    entry_points={"console_scripts": ["quickstage = quickstage.__main__:main"]},
)
