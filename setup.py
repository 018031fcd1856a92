from setuptools import find_packages, setup

setup(
    name="sentinel-watch",
    version="0.1.0",
    description="Watch files and directories and run a script when they change",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "click",
        "rich",
        "watchdog>=4.0",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "sentinel=sentinel.cli:main"
        ]
    },
)
