from setuptools import setup
from stepdiag import __version__

setup(
    name="stepdiag",
    long_description="stepdiag is a command line tool that reports used, unused, unmatched and ambiguous "
    "steps between Gherkin feature files and Python step definitions.",
    version=__version__,
    packages=[
        "stepdiag",
        "stepdiag.commands",
        "stepdiag.readers",
        "stepdiag.data_classes",
        "stepdiag.diagnostics",
        "stepdiag.logging",
        "stepdiag.registry",
    ],
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=[
        "click>=8.0.3,<9.0.0",
        "pyyaml>=6.0.0,<7.0.0",
        "pyserde>=0.12.0",
        "tqdm>=4.65.0,<5.0.0",
        "beartype>=0.17.0,<1.0.0",
        "gherkin-official>=24.0.0",
        "cucumber-expressions>=17.0.0",
    ],
    extras_require={
        "tests": [
            "pytest>=7.0.0",
            "pytest-mock>=3.10.0",
        ],
    },
    entry_points="""
        [console_scripts]
        stepdiag=stepdiag.cli:cli
    """,
)
