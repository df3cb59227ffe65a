"""
Setup script for mdamath package.
"""

from setuptools import setup, find_packages

setup(
    name="mdamath",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        # Core numerical dependencies
        "numpy>=1.20.0",
        "pandas>=1.3.0",
        "scipy>=1.7.0",

        # Utilities
        "pyyaml>=6.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=6.0.0",
            "scikit-learn>=1.0.0",
        ],
    },
    entry_points={
        'console_scripts': [
            'mdamath=mdamath.__main__:main',
        ],
    },
    description="PCA, MLR and cross-validation for multivariate data analysis",
    keywords="chemometrics, pca, nipals, mlr, cross-validation",
    python_requires=">=3.8",
)
