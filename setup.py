from setuptools import setup, find_packages

setup(
    name="image-analyzer",
    version="1.0.0",
    description="Saliency-based subject detection and smart cropping of images to any aspect ratio",
    author="Antoine",
    python_requires=">=3.10",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "Pillow>=10.0.0",
        "opencv-python>=4.8.0",
        "numpy>=1.24.0",
        "click>=8.1.0",
        "tqdm>=4.65.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "black>=23.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "image-analyzer=image_analyzer.cli:cli",
        ],
    },
)
