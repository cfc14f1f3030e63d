"""Setup script for qcs_client Python package."""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="qcs-client",
    version="0.9.0",
    author="QCS developers",
    description="Python client for remote quantum circuit simulation: request bundles, job polling and result decoding",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["qcs_client", "qcs_client.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Scientific/Engineering :: Physics",
    ],
    python_requires=">=3.9",
    install_requires=[
        "httpx>=0.25.0",
        "protobuf>=4.25.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-httpx>=0.26.0",
        ],
    },
)
