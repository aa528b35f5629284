from setuptools import setup, find_packages

setup(
    name="dagcol",
    version="0.1.0",
    description="Content-addressed DAG-JSON/DAG-CBOR nodes with columnar float payloads",

    package_dir={"": "src"},
    packages=find_packages(where="src"),

    install_requires=[
        "httpx>=0.24.0",
        "redis>=4.5.0",
        "pydantic>=2.0.0",
        "click>=8.2.0",
        "pyyaml>=6.0",
        "prometheus-client>=0.16.0",
        "structlog>=22.1.0",
    ],

    extras_require={
        "dev": [
            "pytest>=7.3.0",
            "pytest-cov>=4.0.0",
            "fakeredis>=2.10.0",
            "black>=23.3.0",
            "mypy>=1.3.0",
            "ruff>=0.0.270",
        ],
    },

    entry_points={
        "console_scripts": [
            "dagcol=dagcol.cli.main:cli",
        ],
    },

    python_requires=">=3.11",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.11",
    ],
)
