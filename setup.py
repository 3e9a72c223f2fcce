"""Setup script for BrokerBench."""

from setuptools import find_packages, setup

setup(
    name="brokerbench",
    version="0.1.0",
    description="Throughput and latency benchmarking harness for Kafka-protocol message brokers",
    author="BrokerBench Team",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.24",
        "pandas>=2.0",
        "pyyaml>=6.0",
        "scipy>=1.10",
        "click>=8.1",
        "confluent-kafka>=2.3",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "brokerbench=brokerbench.cli:cli",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
