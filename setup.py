from setuptools import setup, find_packages

setup(
    name="spark-cloud-suite",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "fsspec>=2023.1.0",
        "pyspark>=3.3.0",
        "python-dotenv>=0.19.0",
        "xmltodict>=0.13.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
        "s3": ["s3fs>=2023.1.0"],
        "gcs": ["gcsfs>=2023.1.0"],
        "azure": ["adlfs>=2023.1.0"],
    },
    python_requires=">=3.8",
)
