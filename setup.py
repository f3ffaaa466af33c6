"""
iambench - Policy evaluation latency benchmark

Setup script for installation.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README
readme_path = Path(__file__).parent / "README.md"
long_description = ""
if readme_path.exists():
    long_description = readme_path.read_text(encoding="utf-8")

setup(
    name="iambench",
    version="0.1.0",
    author="iambench contributors",
    description="Throughput and latency benchmark for access control policy evaluation",
    long_description=long_description,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Security",
        "Topic :: System :: Benchmark",
    ],
    python_requires=">=3.9",
    install_requires=[
        "click>=8.1.0",
        "structlog>=23.1.0",
    ],
    extras_require={
        # Rego interpreter used by the default engine
        "rego": [
            "regorus>=0.2.0",
        ],
        "dev": [
            "pytest>=7.4.0",
            "black>=23.0.0",
            "mypy>=1.6.0",
            "ruff>=0.1.0",
        ],
        "all": [
            "regorus>=0.2.0",
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "iambench=iambench.cli.main:main",
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
