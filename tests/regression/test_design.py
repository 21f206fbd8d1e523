"""
Tests for Design: treatment coding, term names, pinned levels, and
response encoding.
"""

import numpy as np
import pytest

from pybootreg import DataSource
from pybootreg.core.exceptions import SchemaError, ValidationError
from pybootreg.regression.design import Design, INTERCEPT
from pybootreg.regression.formula import ModelSpec


class TestTermNames:

    def test_treatment_coding_names(self, retail_source):
        design = Design.from_datasource(
            retail_source, ModelSpec('amount', ['age', 'gender', 'category']),
        )
        assert design.term_names == (
            INTERCEPT, 'age', 'genderMale', 'categoryClothing', 'categoryElectronics',
        )
        assert design.X.shape == (8, 5)
        assert design.has_intercept

    def test_numeric_by_categorical_interaction(self, retail_source):
        design = Design.from_datasource(
            retail_source, ModelSpec.parse('amount ~ age * gender'),
        )
        assert design.term_names == (INTERCEPT, 'age', 'genderMale', 'age:genderMale')
        j = design.term_names.index('age:genderMale')
        expected = retail_source['age'] * (retail_source['gender'] == 'Male')
        np.testing.assert_array_equal(design.X[:, j], expected)

    def test_categorical_by_categorical_interaction(self, retail_source):
        design = Design.from_datasource(
            retail_source, ModelSpec('amount', interactions=[('gender', 'category')]),
        )
        assert design.term_names == (
            INTERCEPT,
            'genderMale:categoryClothing',
            'genderMale:categoryElectronics',
        )

    def test_no_intercept(self, retail_source):
        design = Design.from_datasource(retail_source, ModelSpec.parse('amount ~ age - 1'))
        assert design.term_names == ('age',)
        assert not design.has_intercept

    def test_indicator_values(self, retail_source):
        design = Design.from_datasource(retail_source, ModelSpec('amount', ['gender']))
        np.testing.assert_array_equal(
            design.X[:, 1], (retail_source['gender'] == 'Male').astype(float),
        )
        np.testing.assert_array_equal(design.X[:, 0], np.ones(8))


class TestPinnedLevels:

    def test_absent_level_gives_zero_column(self, retail_source):
        sub = retail_source.take([0, 2, 4, 5, 7])   # no 'Clothing'
        design = Design.from_datasource(
            sub, ModelSpec('amount', ['category']),
            levels={'category': ('Beauty', 'Clothing', 'Electronics')},
        )
        assert design.term_names == (INTERCEPT, 'categoryClothing', 'categoryElectronics')
        assert np.all(design.X[:, 1] == 0.0)

    def test_unknown_value_rejected(self, retail_source):
        with pytest.raises(ValidationError, match="not among pinned levels"):
            Design.from_datasource(
                retail_source, ModelSpec('amount', ['category']),
                levels={'category': ('Beauty', 'Clothing')},
            )

    def test_take_matches_rebuild(self, retail_source):
        spec = ModelSpec.parse('amount ~ age * category')
        full = Design.from_datasource(retail_source, spec)
        idx = np.array([1, 1, 3, 6, 0, 0, 2, 5])
        rebuilt = Design.from_datasource(
            retail_source.take(idx), spec, levels=full.levels,
        )
        taken = full.take(idx)
        np.testing.assert_array_equal(taken.X, rebuilt.X)
        np.testing.assert_array_equal(taken.y, rebuilt.y)
        assert taken.term_names == rebuilt.term_names


class TestResponse:

    def test_categorical_response_rejected_for_ols(self, retail_source):
        with pytest.raises(SchemaError, match="numeric response"):
            Design.from_datasource(retail_source, ModelSpec('gender', ['age']))

    def test_binary_from_two_levels(self, retail_source):
        design = Design.from_datasource(
            retail_source, ModelSpec('gender', ['age']), response='binary',
        )
        assert design.response_levels == ('Female', 'Male')
        np.testing.assert_array_equal(
            design.y, (retail_source['gender'] == 'Male').astype(float),
        )

    def test_binary_rejects_three_levels(self, retail_source):
        with pytest.raises(SchemaError, match="exactly 2"):
            Design.from_datasource(
                retail_source, ModelSpec('category', ['age']), response='binary',
            )

    def test_binary_numeric_must_be_01(self, retail_source):
        with pytest.raises(SchemaError, match="0/1"):
            Design.from_datasource(
                retail_source, ModelSpec('amount', ['age']), response='binary',
            )

    def test_categorical_codes(self, retail_source):
        design = Design.from_datasource(
            retail_source, ModelSpec('category', ['age']), response='categorical',
        )
        assert design.response_levels == ('Beauty', 'Clothing', 'Electronics')
        np.testing.assert_array_equal(design.y[:3], [0.0, 1.0, 2.0])

    def test_missing_categorical_rejected(self):
        ds = DataSource.from_arrays(
            y=[1.0, 2.0, 3.0], g=np.array(['a', None, 'b'], dtype=object),
        )
        with pytest.raises(ValidationError, match="missing values"):
            Design.from_datasource(ds, ModelSpec('y', ['g']))

    def test_missing_numeric_rejected(self):
        ds = DataSource.from_arrays(y=[1.0, np.nan, 3.0], x=[1.0, 2.0, 3.0])
        with pytest.raises(ValidationError, match="non-finite"):
            Design.from_datasource(ds, ModelSpec('y', ['x']))


class TestFromArrays:

    def test_default_names(self, rng):
        design = Design.from_arrays(rng.standard_normal((10, 2)), rng.standard_normal(10))
        assert design.term_names == ('x1', 'x2')
        assert design.spec is None

    def test_name_count_mismatch(self, rng):
        with pytest.raises(ValidationError):
            Design.from_arrays(
                rng.standard_normal((10, 2)), rng.standard_normal(10), term_names=['a'],
            )
