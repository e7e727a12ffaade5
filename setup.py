from setuptools import setup, find_packages


setup(
    name="dotconf",
    version="0.2",
    packages=find_packages(include=["dotconf", "dotconf.*"]),
    description="Pack files into a percent-encoded, optionally encrypted JSON archive and restore them.",
    python_requires=">=3.11",
    install_requires=[
        "pycryptodomex>=3.23.0",
        "argon2-cffi>=23.1.0",
    ],
    entry_points={
        "console_scripts": [
            "dotconf=dotconf.cli:main",
        ]
    },
)
