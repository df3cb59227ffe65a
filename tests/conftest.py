"""
Shared fixtures for the mdamath tests.
"""

import pytest
import numpy as np
import sys
import os

# Add the parent directory to the path to import the module
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from mdamath.components.config import ConfigManager
from mdamath.math.dataset import Dataset


PEOPLE_VALUES = [
    [198, 184, 183, 166, 170, 172, 182, 180, 169, 168, 183, 157, 164, 162, 180, 180,
     185, 187, 168, 166, 158, 177, 180, 181, 163, 162, 176, 175, 165, 161, 178, 160],
    [92, 84, 83, 47, 60, 64, 80, 80, 51, 52, 81, 47, 50, 49, 82, 81,
     82, 84, 50, 49, 46, 65, 72, 75, 50, 50, 68, 67, 51, 48, 75, 48],
    [-1, -1, -1, -1, 1, 1, -1, -1, 1, 1, -1, 1, 1, 1, -1, -1,
     -1, -1, 1, 1, 1, -1, -1, -1, 1, 1, -1, 1, 1, 1, -1, 1],
    [48, 44, 44, 36, 38, 39, 42, 43, 36, 37, 42, 36, 38, 37, 44, 44,
     45, 46, 37, 36, 34, 41, 43, 43, 36, 36, 42, 42, 36, 35, 42, 35],
    [48, 33, 37, 32, 23, 24, 35, 36, 24, 27, 37, 32, 41, 40, 43, 46,
     26, 27, 49, 21, 30, 26, 33, 42, 18, 20, 50, 55, 36, 41, 30, 40],
    [45000, 33000, 34000, 28000, 20000, 22000, 30000, 30000, 23000, 23500, 35000, 32000,
     34000, 34000, 37000, 42000, 16000, 16500, 34000, 14000, 18000, 18000, 19000, 31000,
     11000, 11500, 36000, 38000, 26000, 31500, 24000, 31000],
    [420, 350, 320, 270, 312, 308, 398, 388, 250, 260, 345, 235, 255, 265, 355, 362,
     295, 299, 170, 150, 120, 209, 236, 198, 143, 133, 195, 185, 121, 116, 203, 118],
    [115, 102, 98, 78, 99, 91, 65, 63, 89, 86, 45, 92, 134, 124, 82, 90,
     180, 178, 162, 245, 120, 160, 175, 161, 136, 146, 177, 187, 129, 196, 208, 198],
    [-1, -1, -1, 1, 1, 1, -1, -1, 1, 1, -1, 1, 1, 1, -1, -1,
     -1, -1, 1, 1, 1, -1, -1, -1, 1, 1, -1, -1, 1, 1, -1, 1],
    [98, 92, 91, 75, 81, 82, 85, 84, 78, 78, 90, 70, 76, 75, 88, 86,
     92, 95, 76, 75, 70, 86, 85, 83, 75, 74, 82, 80, 76, 75, 81, 74],
    [-1, -1, -1, -1, -1, -1, -1, -1, -1, -1, -1, -1, -1, -1, -1, -1,
     1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1],
    [100, 130, 127, 112, 110, 102, 140, 129, 98, 100, 105, 127, 101, 108, 109, 113,
     109, 119, 135, 123, 119, 120, 115, 105, 102, 132, 96, 105, 126, 120, 118, 129],
]

PEOPLE_VARS = ['Height', 'Weight', 'Hairlength', 'Shoesize', 'Age', 'Income',
               'Beer', 'Wine', 'Sex', 'Swim', 'Region', 'IQ']

PEOPLE_OBJS = ['Lars', 'Peter', 'Rasmus', 'Lene', 'Mette', 'Gitte', 'Jens', 'Erik',
               'Lotte', 'Heidi', 'Kaj', 'Gerda', 'Anne', 'Britta', 'Magnus', 'Casper',
               'Luka', 'Federico', 'Dona', 'Fabrizia', 'Lisa', 'Benito', 'Franko',
               'Alessandro', 'Leonora', 'Giuliana', 'Giovanni', 'Leonardo', 'Marta',
               'Rosetta', 'Romeo', 'Romina']


@pytest.fixture
def people():
    """The People dataset: 12 variables measured on 32 persons."""
    return Dataset(
        PEOPLE_VALUES,
        PEOPLE_VARS,
        PEOPLE_OBJS,
        'People',
        '',
        'Variable #',
        PEOPLE_VARS,
        'Person #'
    )


@pytest.fixture
def correlated():
    """Two perfectly correlated variables on five objects."""
    return Dataset([[1, 2, 3, 4, 5], [2, 4, 6, 8, 10]], ['X1', 'X2'])


@pytest.fixture
def small():
    """A 3 x 4 dataset with distinct values."""
    return Dataset(
        [[1.0, 2.0, 3.0, 4.0],
         [5.0, 3.0, 8.0, 1.0],
         [0.5, 0.1, 0.9, 0.2]],
        ['a', 'b', 'c'],
        ['o1', 'o2', 'o3', 'o4'],
        'Small'
    )


@pytest.fixture
def random_data():
    """A reproducible 6 x 40 dataset with some correlation between variables."""
    rng = np.random.default_rng(42)
    latent = rng.normal(size=(2, 40))
    mixing = rng.normal(size=(6, 2))
    values = mixing @ latent + 0.1 * rng.normal(size=(6, 40))
    return Dataset(values, name='Random')


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Isolate tests from MDA_* environment variables and the config singleton."""
    for key in list(os.environ):
        if key.startswith('MDA_') or key == 'LOG_LEVEL':
            monkeypatch.delenv(key, raising=False)
    ConfigManager.reset()
    yield
    ConfigManager.reset()
