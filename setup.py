from setuptools import setup, find_packages

setup(
    name='nlpik',
    version='0.1.0',
    packages=find_packages(exclude=['tests', 'tests.*', 'scripts']),
    python_requires='>=3.9',
    install_requires=[
        'jax',
        'jaxlib',
        'urdf-parser-py',
        'numpy',
        'scipy',
    ],
    extras_require={
        'test': ['pytest'],
    },
    description='Inverse kinematics as a nonlinear program with exact autodiff gradients',
    author='nlpik developers',
)
