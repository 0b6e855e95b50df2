from setuptools import setup, find_packages

setup(
    name="voiceqa",
    version="0.1.0",
    description="Voice question answering backend: transcribe a spoken question and stream back a generated answer",
    author="",
    python_requires=">=3.9",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "google-cloud-speech>=2.16.0",
        "google-auth>=2.10.0",
        "pydantic>=2.0.0",
        "pyyaml>=6.0.0",
        "pypubsub>=4.0.3",
        "aiohttp>=3.8.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "voiceqa=voiceqa.main:main",
        ],
    },
)
