"""Setup configuration for tokenslim"""
from setuptools import setup, find_packages

setup(
    name="tokenslim",
    version="0.1.0",
    description="Measure, rank and rewrite source files for token efficiency",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "click>=8.1.7",
        "python-dotenv>=1.0.0",
        "httpx>=0.27.0",
        "pydantic>=2.5.0",
        "pyyaml>=6.0.1",
        "tiktoken>=0.7.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "tokenslim=tokenslim.cli:cli",
        ],
    },
    python_requires=">=3.9",
)
