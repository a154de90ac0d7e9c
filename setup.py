# setup.py
from setuptools import setup, find_namespace_packages

setup(
    name="missingrefs",
    version="1.0.0",
    description="Static scanner that reports broken serialized references in Unity-style projects",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["missingrefs", "missingrefs.*"]),
    python_requires=">=3.8",
    install_requires=[
        "PyYAML>=6.0",  # Parsing of text-serialized assets and .meta sidecars
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        'console_scripts': [
            'missingrefs=missingrefs.main:main',  # Runs the scan from the command line
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
