"""
Tests for the feature transformation helpers.

Tests cover:
- Frequency ranking of category values
- Bucket assignment at and between boundaries
- Spark transformer wiring (DataFrames mocked)
"""

import pytest
from unittest.mock import MagicMock, patch

from taxi_tips.jobs.features import transformers
from taxi_tips.jobs.features.transformers import (
    BINARIZE_THRESHOLD,
    TRAFFIC_TIME_SPLITS,
    add_trip_features,
    bucket_index,
    bucketize,
    fit_frequency_indexer,
    rank_labels,
)


class TestRankLabels:
    """Tests for rank_labels."""

    def test_descending_frequency(self):
        stats = [("NOC", 1, 0), ("CRD", 5, 3), ("CSH", 3, 1)]
        assert rank_labels(stats) == ["CRD", "CSH", "NOC"]

    def test_tie_broken_by_first_seen(self):
        # payment_type = [CSH, CRD, CSH, CRD]
        stats = [("CRD", 2, 1), ("CSH", 2, 0)]
        assert rank_labels(stats) == ["CSH", "CRD"]

    def test_input_order_does_not_matter(self):
        stats = [("A", 2, 4), ("B", 2, 2), ("C", 7, 9), ("D", 1, 0)]
        assert rank_labels(stats) == rank_labels(list(reversed(stats)))
        assert rank_labels(stats) == ["C", "B", "A", "D"]

    def test_empty(self):
        assert rank_labels([]) == []


class TestBucketIndex:
    """Tests for bucket_index with the traffic time splits."""

    @pytest.mark.parametrize("value,expected", [
        (-1.0, 0),
        (0.0, 0),
        (0.5, 1),
        (1.0, 1),
        (1.5, 2),
        (2.0, 2),
        (2.5, 3),
        (3.0, 3),
        (3.49, 3),
    ])
    def test_bucket_assignment(self, value, expected):
        assert bucket_index(value) == expected

    def test_every_index_maps_to_one_of_four_buckets(self):
        assert {bucket_index(v) for v in [0.0, 1.0, 2.0, 3.0]} == {0, 1, 2, 3}

    @pytest.mark.parametrize("value", [-1.5, 3.5, 10.0])
    def test_out_of_range_raises_error(self, value):
        with pytest.raises(ValueError, match="outside bucket range"):
            bucket_index(value)

    def test_too_few_splits_raise_error(self):
        with pytest.raises(ValueError):
            bucket_index(0.0, [0.0])

    def test_default_splits(self):
        assert TRAFFIC_TIME_SPLITS == [-1.0, 0.5, 1.5, 2.5, 3.5]
        assert BINARIZE_THRESHOLD == 0.5


class TestFitFrequencyIndexer:
    """Tests for fit_frequency_indexer (label collection mocked)."""

    def test_labels_follow_rank_order(self):
        df = MagicMock()
        stats = [("CRD", 2, 1), ("CSH", 2, 0)]
        with patch.object(transformers, "collect_label_stats", return_value=stats), \
                patch.object(transformers, "StringIndexerModel") as model_cls:
            fit_frequency_indexer(df, "payment_type", "pt_ind")

        model_cls.from_labels.assert_called_once_with(
            ["CSH", "CRD"],
            inputCol="payment_type",
            outputCol="pt_ind",
            handleInvalid="error",
        )

    def test_empty_column_raises_error(self):
        with patch.object(transformers, "collect_label_stats", return_value=[]):
            with pytest.raises(ValueError, match="no values"):
                fit_frequency_indexer(MagicMock(), "payment_type", "pt_ind")


class TestBucketize:
    """Tests for bucketize wiring (Spark functions mocked)."""

    def test_upper_split_rejected_before_bucketizer(self):
        df = MagicMock(name="trips")
        guarded = df.withColumn.return_value
        with patch.object(transformers, "F") as f, \
                patch.object(transformers, "Bucketizer") as bucketizer_cls:
            f.col.return_value.__ge__.return_value = "at_or_above_upper"
            result = bucketize(df, "TrafficTimeInd", "TrafficTimeBuc")

        f.col.return_value.__ge__.assert_called_once_with(3.5)
        f.when.assert_called_once_with("at_or_above_upper", f.raise_error.return_value)
        df.withColumn.assert_called_once_with(
            "TrafficTimeInd", f.when.return_value.otherwise.return_value
        )
        bucketizer_cls.assert_called_once_with(
            splits=TRAFFIC_TIME_SPLITS,
            inputCol="TrafficTimeInd",
            outputCol="TrafficTimeBuc",
            handleInvalid="error",
        )
        bucketizer_cls.return_value.transform.assert_called_once_with(guarded)
        assert result is bucketizer_cls.return_value.transform.return_value

    def test_error_message_names_half_open_range(self):
        with patch.object(transformers, "F") as f, \
                patch.object(transformers, "Bucketizer"):
            f.col.return_value.__ge__.return_value = "at_or_above_upper"
            bucketize(MagicMock(), "x", "b", splits=[0.0, 1.0, 2.0])

        messages = [c.args[0] for c in f.lit.call_args_list]
        assert " outside bucket range [0.0, 2.0)" in messages
        f.col.return_value.__ge__.assert_called_once_with(2.0)


class TestAddTripFeatures:
    """Tests for the add_trip_features chain."""

    def test_chains_all_four_columns(self):
        df = MagicMock(name="trips")
        with patch.object(transformers, "index_column", side_effect=lambda d, i, o: d) as index, \
                patch.object(transformers, "binarize", side_effect=lambda d, i, o: d) as binarize, \
                patch.object(transformers, "bucketize", side_effect=lambda d, i, o: d) as bucketize:
            result = add_trip_features(df)

        assert result is df
        assert [c.args[1:] for c in index.call_args_list] == [
            ("payment_type", "pt_ind"),
            ("TrafficTimeBins", "TrafficTimeInd"),
        ]
        binarize.assert_called_once_with(df, "pt_ind", "pt_bin")
        bucketize.assert_called_once_with(df, "TrafficTimeInd", "TrafficTimeBuc")
