from setuptools import setup, find_packages


setup(
    name="sforename",
    version="0.1",
    packages=find_packages(),
    description="Rename PS Vita zip archives after the PARAM.SFO metadata embedded in them.",
    author="vercingetorx",
    python_requires=">=3.8",
    install_requires=[
        "colorama>=0.4.6",
    ],
    extras_require={
        "test": ["pytest>=7", "setuptools"],
    },
    entry_points={
        "console_scripts": [
            "sforename=sforename.cli:main",
        ]
    },
)
