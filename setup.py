from setuptools import setup, find_packages

setup(
    name="mkv-episode-fix",
    version="1.0.0",
    description="Batch-fix MKV episode titles, track metadata and file names from a JSON episode list",
    author="Ashwin Nair",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "argcomplete>=3.0",
        "PyYAML>=6.0",
        "rich>=13.0",
        "tqdm>=4.60",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "mkv-episode-fix = apps.cli:main",
            "mkv-episode-config = common.shared.loader:cli_main",
        ],
    },
)
