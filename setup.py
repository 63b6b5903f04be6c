from setuptools import setup, find_packages


setup(
    name="ustar",
    version="0.1",
    packages=find_packages(include=["ustar", "ustar.*"]),
    description="Reader, writer and in-memory model for uncompressed POSIX USTAR tar archives.",
    python_requires=">=3.8",
    install_requires=[],
    entry_points={
        "console_scripts": [
            "ustar=ustar.cli:main",
        ]
    },
)
