from setuptools import setup, find_packages

setup(
    name='motion_edit_core',
    version='0.1.0',
    packages=find_packages(include=['motion_edit_core', 'motion_edit_core.*']),
    package_data={
        'motion_edit_core': ['configs/*.json'],
    },
    python_requires='>=3.8',
    install_requires=[
        'numpy',
        'scipy',
    ],
    extras_require={
        'test': ['pytest'],
    },
)
