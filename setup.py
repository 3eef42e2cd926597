from setuptools import setup, find_packages


setup(
    name="blte",
    version="0.1",
    packages=find_packages(include=["blte", "blte.*"]),
    description="Encoder/decoder for BLTE block-table containers.",
    author="vercingetorx",
    python_requires=">=3.8",
    install_requires=[],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "blte=blte.cli:main",
        ]
    },
)
