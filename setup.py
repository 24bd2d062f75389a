# setup.py
from setuptools import setup, find_packages

setup(
    name="bulk-loadgen",
    version="0.1.0",
    description="Parallel bulk-load generator for document-store _bulk endpoints",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.9",
    install_requires=[
        "requests>=2.28",
        "tqdm>=4.64",
        "setproctitle>=1.2",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    entry_points={
        "console_scripts": [
            "bulk-loadgen=bulk_loadgen.cli:main",
        ],
    },
)
