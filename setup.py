from setuptools import find_packages, setup

setup(
    name='mmfitter',
    version='0.1.0',
    packages=find_packages('src'),
    package_dir={'': 'src'},
    scripts=[],
    description='Selective recomputation of the derived energy data for fitting multilinear '
    'shape models to target meshes under correspondence and landmark constraints',
    python_requires='>=3.9',
    install_requires=[
        'numpy',
        'scipy',
        'numba',
    ],
    extras_require={
        'test': ['pytest'],
    },
)
