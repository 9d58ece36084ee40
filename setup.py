from setuptools import setup, find_packages

setup(
    name="vitalswatch",
    version="1.0.0",
    description="Polls vitals-glimpse endpoints and stores server metrics in InfluxDB",
    packages=find_packages(include=["vitalswatch", "vitalswatch.*"]),
    python_requires=">=3.11",
    install_requires=[
        "aiohttp>=3.9.0",                 # For HTTP client
        "pydantic>=2.0.0",
        "python-dotenv>=0.19.0",
        "influxdb-client[async]>=1.36.0", # For InfluxDB writes
        "prometheus-client>=0.17.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "vitalswatch=vitalswatch.main:main",
        ]
    }
)
