#!/usr/bin/env python3
"""
Setup configuration for Playlist-Sorter
File the song you're listening to into your Spotify playlists
"""

from setuptools import setup, find_packages

# Read README for long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Core requirements (always installed)
core_requirements = [
    "spotipy>=2.23.0",
    "click>=8.1.7",
    "pyyaml>=6.0.1",
    "requests>=2.31.0",
    "colorama>=0.4.6",
    "python-dotenv>=1.0.0",
    "asyncio-throttle>=1.0.2",
]

setup(
    name="playlist-sorter",
    version="0.1.0",
    author="Playlist-Sorter Team",
    description="Sort the currently playing Spotify track into your own and collaborative playlists",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["playlist_sorter", "playlist_sorter.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Sound/Audio",
    ],
    python_requires=">=3.9",
    install_requires=core_requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.3",
            "pytest-asyncio>=0.21.1",
            "black>=23.11.0",
            "flake8>=6.1.0",
            "mypy>=1.7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "playlist-sorter=playlist_sorter.main:main",
        ],
    },
    keywords="spotify playlist sorter organizer cli",
)
