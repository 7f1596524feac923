from setuptools import setup, find_packages

setup(
    name="track-analyzer",
    version="0.1.0",
    description="Tempo, key and energy extraction for audio tracks",
    author="Track Analyzer Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=[
        "numpy>=1.21.0",
        "pyyaml>=6.0",
        "librosa>=0.10.0",
        "soundfile>=0.12.0",
        "pydantic>=2.0.0",
        "fastapi>=0.100.0",
        "uvicorn>=0.23.0",
        "httpx>=0.24.0",
        "click>=8.1.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
        ],
        "engine": [
            "essentia>=2.1b6.dev1110",
        ],
    },
    entry_points={
        "console_scripts": [
            "track-analyzer=track_analyzer.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Multimedia :: Sound/Audio :: Analysis",
    ],
    python_requires=">=3.10",
)
