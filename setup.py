# setup.py
from setuptools import setup, find_packages

setup(
    name="fleet_db",
    version="0.1.0",
    description="Dual-backend (SQLite / PostgreSQL) data-access layer for vehicle maintenance records",
    author="Swift Fox",
    packages=find_packages(
        exclude=(
            "tests",
            "tests.*",
            "docs",
            "dist",
            "build",
        )
    ),
    install_requires=[
        "psycopg2-binary>=2.9",
        "python-dotenv>=1.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    python_requires=">=3.10",
)
