"""
Setup script for Quote Tracker
"""

from pathlib import Path
from setuptools import setup, find_packages

# Read requirements
requirements = []
req_file = Path(__file__).parent / "requirements.txt"
if req_file.exists():
    with open(req_file) as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith('#'):
                requirements.append(line)

# Read README
readme_file = Path(__file__).parent / "README.md"
long_description = ""
if readme_file.exists():
    with open(readme_file, encoding="utf-8") as f:
        long_description = f.read()

setup(
    name="quote-tracker",
    version="1.0.0",
    author="Hexágono Web",
    description="Quote lifecycle and notification delivery service",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["quote_tracker", "quote_tracker.*"]),
    include_package_data=True,
    install_requires=requirements,
    extras_require={
        'test': [
            'pytest>=8.0.0',
            'anyio>=4.0.0',
            'aiosqlite>=0.19.0',
        ],
    },
    python_requires=">=3.10",
    entry_points={
        'console_scripts': [
            'quote-tracker=quote_tracker.main:run',
            'quote-tracker-scheduler=quote_tracker.scheduler:main',
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Framework :: FastAPI",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
