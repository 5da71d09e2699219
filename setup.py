from setuptools import setup, find_packages

setup(
    name="contribute",
    version="1.0.0",
    description="Suggest help-wanted GitHub issues in a project's dependencies",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        "requests>=2.31.0",
        "rich>=13.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "contribute=contribute.cli:main",
        ],
    },
)
