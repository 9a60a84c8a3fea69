from setuptools import find_packages, setup

setup(
    name="facet-mender",
    version="0.1.0",
    description="A connectivity repair algorithm for triangle facet soups",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "numpy",
        "scipy",
        "trimesh",
        "pyvista>=0.45",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
