#!/usr/bin/env python3
"""
Tests for MLPForge activations, model, training context, chunked
scheduler, worker pool, data pipeline, configuration and trainer.

Run all tests:
    python -m pytest tests/ -v --tb=short

Run a specific test class:
    python -m pytest tests/test_mlpforge.py -v -k TestChunkedTraining
"""

import sys
import threading
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


def _linear_model():
    """2-2-1 network with hand-picked weights and identity activations."""
    from mlpforge.model import Model, linear
    return Model(
        [
            [[1, 2, 0],
             [3, 4, 0]],
            [[1, 2, 0]],
        ],
        internal=linear(1),
        output=linear(1),
    )


def _regression_model(seed):
    from mlpforge.model import Model, SIGMOID, linear
    return Model.random(seed, SIGMOID, linear(1), 1, 3, 3, 1)


def _all_rounded_correctly(model, training_set):
    return all(
        np.array_equal(np.round(model.predict(ex.input)), ex.target)
        for ex in training_set
    )


# =============================================================================
# Activation Tests
# =============================================================================

class TestActivations:
    """Tests for the activation catalog."""

    def test_simple_values(self):
        from mlpforge.model import RELU, SIGMOID, SIGNED_LOG, TANH, linear
        assert linear(2.5).activate(2.0) == 5.0
        assert SIGMOID.activate(0.0) == 0.5
        assert TANH.activate(0.0) == 0.0
        assert RELU.activate(-3.0) == 0.0
        assert RELU.activate(3.0) == 3.0
        assert SIGNED_LOG.activate(-(np.e - 1)) == pytest.approx(-1.0)

    def test_elementwise_on_arrays(self):
        from mlpforge.model import RELU
        x = np.array([-1.0, 0.0, 2.0])
        np.testing.assert_array_equal(RELU.activate(x), [0.0, 0.0, 2.0])
        np.testing.assert_array_equal(RELU.derivative(x), [0.0, 0.0, 1.0])

    def test_composites(self):
        from mlpforge.model import SIGMOID, TANH, scaled, stretched
        assert scaled(SIGMOID, 2.0).activate(1.5) == SIGMOID.activate(3.0)
        assert stretched(TANH, 3.0).activate(0.5) == pytest.approx(3.0 * np.tanh(0.5))

    @pytest.mark.parametrize("name", [
        "linear(0.5)", "sigmoid", "tanh", "signlog",
        "scaled(sigmoid,2.0)", "stretched(tanh,3.0)",
        "scaled(stretched(signlog,1.5),0.25)",
    ])
    def test_derivative_matches_finite_difference(self, name):
        """Derivatives are taken at the pre-activation value."""
        from mlpforge.model import parse_activation
        act = parse_activation(name)
        h = 1e-6
        for x in (-1.3, -0.2, 0.4, 2.1):
            numeric = (act.activate(x + h) - act.activate(x - h)) / (2 * h)
            assert act.derivative(x) == pytest.approx(numeric, rel=1e-5, abs=1e-8)

    @pytest.mark.parametrize("name", [
        "linear(1.0)", "relu", "sigmoid", "tanh", "signlog",
        "scaled(sigmoid,2.0)", "stretched(scaled(tanh,0.5),-1.25)",
    ])
    def test_name_round_trip(self, name):
        from mlpforge.model import parse_activation
        act = parse_activation(name)
        assert act.name == name
        assert parse_activation(act.name) == act

    def test_bare_linear_is_identity(self):
        from mlpforge.model import linear, parse_activation
        assert parse_activation(" linear ") == linear(1.0)

    @pytest.mark.parametrize("name", [
        "softmax", "linear(abc)", "scaled(sigmoid)", "scaled(sigmoid,2", "relu(2)",
    ])
    def test_invalid_names(self, name):
        from mlpforge.model import parse_activation
        with pytest.raises(ValueError):
            parse_activation(name)

    def test_wrapper_needs_inner(self):
        from mlpforge.model import Activation, Kind
        with pytest.raises(ValueError):
            Activation(Kind.SCALED, factor=2.0)


# =============================================================================
# Model Tests
# =============================================================================

class TestModel:
    """Tests for model construction, inference, cloning and NaN scans."""

    def test_linear_forward_pass(self):
        """Identity activations make the forward pass plain matrix algebra."""
        model = _linear_model()
        np.testing.assert_array_equal(model.predict([1, 0]), [7.0])
        np.testing.assert_array_equal(model.predict([1, 2]), [27.0])

    def test_predict_is_pure(self):
        from mlpforge.model import Model, RELU, SIGMOID
        model = Model.random(1, RELU, SIGMOID, 3, 5, 2)
        before = model.clone()
        first = model.predict([0.1, -0.4, 2.0])
        second = model.predict([0.1, -0.4, 2.0])
        np.testing.assert_array_equal(first, second)
        assert first is not second
        for w, b in zip(model.weights, before.weights):
            np.testing.assert_array_equal(w, b)

    def test_random_shapes(self):
        from mlpforge.model import Model, TANH, linear
        model = Model.random(np.random.default_rng(0), TANH, linear(1), 4, 6, 3, 2)
        assert [w.shape for w in model.weights] == [(6, 5), (3, 7), (2, 4)]
        assert model.input_size == 4
        assert model.output_size == 2
        assert model.layer_sizes == [4, 6, 3, 2]

    def test_random_is_seeded(self):
        from mlpforge.model import Model, TANH
        a = Model.random(99, TANH, TANH, 2, 3, 1)
        b = Model.random(99, TANH, TANH, 2, 3, 1)
        for wa, wb in zip(a.weights, b.weights):
            np.testing.assert_array_equal(wa, wb)

    def test_needs_two_layer_sizes(self):
        from mlpforge.model import Model, TANH
        with pytest.raises(ValueError, match="at least 2 layers"):
            Model.random(0, TANH, TANH, 3)

    def test_unchained_weights_rejected(self):
        from mlpforge.model import Model, linear
        with pytest.raises(ValueError, match="expects"):
            Model([np.zeros((2, 3)), np.zeros((1, 4))], linear(1), linear(1))

    def test_wrong_input_size(self):
        model = _linear_model()
        with pytest.raises(ValueError, match="input size"):
            model.predict([1, 2, 3])
        with pytest.raises(ValueError, match="input size"):
            model.predict([1])

    def test_nested_input_rejected(self):
        model = _linear_model()
        with pytest.raises(ValueError, match="1-D"):
            model.predict([[1, 0]])
        with pytest.raises(ValueError, match="1-D"):
            model.predict(np.ones((2, 1)))

    def test_activate_input(self):
        from mlpforge.model import Model, RELU, linear
        plain = Model([[[1.0, 0.0]]], RELU, linear(1))
        squashed = Model([[[1.0, 0.0]]], RELU, linear(1), activate_input=True)
        assert plain.predict([-2.0])[0] == -2.0
        assert squashed.predict([-2.0])[0] == 0.0

    def test_clone_is_independent(self):
        from mlpforge.model import Model, RELU, SIGMOID
        model = Model.random(5, RELU, SIGMOID, 2, 4, 1)
        twin = model.clone()
        for w, t in zip(model.weights, twin.weights):
            np.testing.assert_array_equal(w, t)
            assert w is not t

        twin.weights[0][0, 0] += 1.0
        assert twin.weights[0][0, 0] != model.weights[0][0, 0]
        assert twin.internal is model.internal
        assert twin.output is model.output

    def test_has_nan(self):
        from mlpforge.model import Model, RELU, SIGMOID
        model = Model.random(5, RELU, SIGMOID, 2, 4, 1)
        assert not model.has_nan()
        assert not model.clone().has_nan()
        model.weights[1][0, 2] = float("nan")
        assert model.has_nan()

    def test_str_lists_layers(self):
        text = str(_linear_model())
        assert text.startswith("input\n")
        assert "Hidden Layer 1" in text
        assert text.endswith("output")


# =============================================================================
# Training Context Tests
# =============================================================================

class TestTrainingContext:
    """Tests for the forward pass and back-propagation."""

    def test_feed_forward_buffers(self):
        from mlpforge.training import TrainingContext
        ctx = TrainingContext(_linear_model())
        ctx.feed_forward([1, 2])
        assert len(ctx.generated_nodes) == 3
        np.testing.assert_array_equal(ctx.generated_nodes[0], [1, 2, 1])
        np.testing.assert_array_equal(ctx.pre_normalized[1], [5, 11])
        np.testing.assert_array_equal(ctx.generated_nodes[1], [5, 11, 1])
        np.testing.assert_array_equal(ctx.generated_nodes[2], [27])

    def test_buffers_are_reused(self):
        from mlpforge.training import TrainingContext
        ctx = TrainingContext(_linear_model())
        ctx.feed_forward([1, 0])
        nodes = list(ctx.generated_nodes)
        ctx.feed_forward([0, 1])
        assert all(a is b for a, b in zip(nodes, ctx.generated_nodes))

    def test_buffers_follow_layer_count(self):
        from mlpforge.model import Model, TANH
        from mlpforge.training import TrainingContext
        ctx = TrainingContext(_linear_model())
        ctx.feed_forward([1, 0])
        ctx.model = Model.random(0, TANH, TANH, 2, 3, 3, 1)
        ctx.feed_forward([1, 0])
        assert len(ctx.generated_nodes) == 4
        assert len(ctx.pre_normalized) == 4

    def test_forward_matches_predict(self):
        from mlpforge.model import Model, SIGMOID, TANH
        from mlpforge.training import TrainingContext
        model = Model.random(11, TANH, SIGMOID, 3, 4, 4, 2)
        ctx = TrainingContext(model)
        ctx.feed_forward([0.5, -1.0, 0.25])
        np.testing.assert_allclose(
            ctx.generated_nodes[-1], model.predict([0.5, -1.0, 0.25]), rtol=1e-12
        )

    def test_wrong_input_size(self):
        from mlpforge.training import TrainingContext
        ctx = TrainingContext(_linear_model())
        with pytest.raises(ValueError, match="input size"):
            ctx.feed_forward([1, 2, 3])

    def test_wrong_target_size(self):
        from mlpforge.training import TrainingContext
        ctx = TrainingContext(_linear_model())
        ctx.feed_forward([1, 0])
        with pytest.raises(ValueError, match="target size"):
            ctx.back_propagate([1, 2], 0.1)

    def test_nested_vectors_rejected(self):
        from mlpforge.training import TrainingContext
        ctx = TrainingContext(_linear_model())
        with pytest.raises(ValueError, match="1-D"):
            ctx.feed_forward([[1, 0]])
        ctx.feed_forward([1, 0])
        with pytest.raises(ValueError, match="1-D"):
            ctx.back_propagate([[7]], 0.1)

    def test_reported_error(self):
        from mlpforge.training import TrainingContext
        ctx = TrainingContext(_linear_model())
        ctx.feed_forward([1, 0])          # output 7
        assert ctx.back_propagate([5], 0.0) == 2.0

    def test_multiplicative_update_rule(self):
        """
        The update is lr * node * delta, subtracted from the weight.

        An earlier revision divided lr * error by the gradient term and
        skipped zero divisors. That rule is not used; this test fails if
        it comes back.
        """
        from mlpforge.model import Model, linear
        from mlpforge.training import TrainingContext
        model = Model([[[2.0, 1.0]]], linear(1), linear(1))
        ctx = TrainingContext(model)
        ctx.feed_forward([3.0])           # output 7, delta 2
        error = ctx.back_propagate([5.0], 0.1)

        assert error == 2.0
        assert model.weights[0][0, 0] == pytest.approx(2.0 - 0.1 * 3.0 * 2.0)
        assert model.weights[0][0, 1] == pytest.approx(1.0 - 0.1 * 1.0 * 2.0)

        divided = 2.0 - 0.1 * error / (3.0 * 2.0)
        assert model.weights[0][0, 0] != pytest.approx(divided)

    def test_update_follows_gradient(self):
        """With lr=1 the accumulated change is minus the error gradient."""
        from mlpforge.evaluation.metrics import example_loss
        from mlpforge.model import Model, SIGMOID, TANH
        from mlpforge.training import TrainingContext
        model = Model.random(3, TANH, SIGMOID, 2, 3, 2)
        x, t = np.array([0.3, -0.7]), np.array([0.2, 0.9])

        ctx = TrainingContext(model)
        changes = [np.zeros_like(w) for w in model.weights]
        ctx.feed_forward(x)
        ctx.back_propagate(t, 1.0, changes)

        h = 1e-6
        for layer, w in enumerate(model.weights):
            for idx in np.ndindex(w.shape):
                original = w[idx]
                w[idx] = original + h
                up = example_loss(model.predict(x), t)
                w[idx] = original - h
                down = example_loss(model.predict(x), t)
                w[idx] = original
                numeric = (up - down) / (2 * h)
                # Deltas use (o - t) for the summed error; the loss is a mean.
                assert -changes[layer][idx] == pytest.approx(
                    len(t) * numeric, rel=1e-5, abs=1e-9
                )

    def test_changes_leave_model_untouched(self):
        from mlpforge.model import Model, RELU, SIGMOID
        from mlpforge.training import TrainingContext
        model = Model.random(8, RELU, SIGMOID, 2, 4, 1)
        before = model.clone()
        ctx = TrainingContext(model)
        changes = [np.zeros_like(w) for w in model.weights]
        for _ in range(3):
            ctx.feed_forward([1.0, 1.0])
            ctx.back_propagate([1.0], 0.5, changes)
        for w, b in zip(model.weights, before.weights):
            np.testing.assert_array_equal(w, b)
        assert any(np.any(c != 0) for c in changes)

    def test_changes_must_match_shapes(self):
        from mlpforge.training import TrainingContext
        ctx = TrainingContext(_linear_model())
        ctx.feed_forward([1, 0])
        with pytest.raises(ValueError, match="shapes"):
            ctx.back_propagate([7], 0.1, [np.zeros((2, 3))])


# =============================================================================
# Sequential Training Tests
# =============================================================================

class TestSequentialTraining:
    """Tests for TrainingContext.train."""

    def test_epoch_callback(self):
        from mlpforge.data import truth_table
        from mlpforge.model import Model, RELU, SIGMOID
        from mlpforge.training import TrainingContext
        ctx = TrainingContext(Model.random(20, RELU, SIGMOID, 2, 4, 1))
        seen = []
        ctx.train(truth_table("and"), 5, 0.6, lambda epoch, err: seen.append((epoch, err)))
        assert [epoch for epoch, _ in seen] == [0, 1, 2, 3, 4]
        assert all(err >= 0 for _, err in seen)

    def test_no_callback(self):
        from mlpforge.data import truth_table
        from mlpforge.model import Model, RELU, SIGMOID
        from mlpforge.training import TrainingContext
        ctx = TrainingContext(Model.random(20, RELU, SIGMOID, 2, 4, 1))
        ctx.train(truth_table("and"), 3, 0.6)

    def test_deterministic(self):
        from mlpforge.data import truth_table
        from mlpforge.model import Model, TANH, SIGMOID
        from mlpforge.training import TrainingContext
        base = Model.random(4, TANH, SIGMOID, 2, 3, 1)
        a, b = TrainingContext(base.clone()), TrainingContext(base.clone())
        a.train(truth_table("xor"), 50, 0.3)
        b.train(truth_table("xor"), 50, 0.3)
        for wa, wb in zip(a.weights, b.weights):
            np.testing.assert_array_equal(wa, wb)

    def test_callback_total_matches_metric(self):
        """The epoch total is the sum of per-example losses before each update."""
        from mlpforge.data import truth_table
        from mlpforge.evaluation.metrics import total_error
        from mlpforge.model import Model, TANH, SIGMOID
        from mlpforge.training import TrainingContext
        data = truth_table("or")[:1]
        ctx = TrainingContext(Model.random(4, TANH, SIGMOID, 2, 3, 1))
        expected = total_error(ctx.model, data)
        seen = []
        ctx.train(data, 1, 0.3, lambda epoch, err: seen.append(err))
        assert seen[0] == pytest.approx(expected)

    @pytest.mark.parametrize("table,lr", [("and", 0.6), ("or", 0.4), ("xor", 0.4)])
    def test_truth_tables_converge(self, table, lr):
        from mlpforge.data import truth_table
        from mlpforge.model import Model, RELU, SIGMOID
        from mlpforge.training import TrainingContext
        data = truth_table(table)
        # Convergence is statistical: a ReLU net can start with dead units.
        for seed in (20, 30, 40, 50, 60):
            ctx = TrainingContext(Model.random(seed, RELU, SIGMOID, 2, 4, 1))
            ctx.train(data, 3000, lr)
            if _all_rounded_correctly(ctx.model, data):
                break
        else:
            pytest.fail(f"{table.upper()} did not converge for any seed")

    def test_regression_converges(self):
        from mlpforge.data import truth_table
        from mlpforge.training import TrainingContext
        data = truth_table("doubling")
        for seed in (3453, 9988, 17):
            ctx = TrainingContext(_regression_model(seed))
            ctx.train(data, 30000, 0.1)
            if _all_rounded_correctly(ctx.model, data):
                break
        else:
            pytest.fail("regression did not converge for any seed")


# =============================================================================
# Chunked Training Tests
# =============================================================================

class TestChunkedTraining:
    """Tests for the concurrent scheduler."""

    @pytest.mark.parametrize("table,build", [
        ("doubling", lambda: _regression_model(3453)),
        ("xor", None),
    ])
    def test_single_worker_matches_sequential(self, table, build):
        """workers=1, chunk_size=1 reproduces sequential training exactly."""
        from mlpforge.data import truth_table
        from mlpforge.model import Model, TANH, SIGMOID
        from mlpforge.training import TrainingContext
        data = truth_table(table)
        model = build() if build else Model.random(12, TANH, SIGMOID, 2, 5, 3, 1)

        sequential = TrainingContext(model)
        chunked = TrainingContext(model.clone())
        sequential.train(data, 10, 0.5)
        chunked.train_chunked(data, 10, 1, 1, 0.5)

        for layer, (a, b) in enumerate(zip(sequential.weights, chunked.weights)):
            assert np.array_equal(a, b), f"layer {layer} differs"

    def test_input_model_untouched(self):
        from mlpforge.data import truth_table
        from mlpforge.model import Model, RELU, SIGMOID
        from mlpforge.training import TrainingContext
        model = Model.random(2, RELU, SIGMOID, 2, 4, 1)
        before = model.clone()
        ctx = TrainingContext(model)
        ctx.train_chunked(truth_table("and"), 20, 3, 1, 0.5)
        assert ctx.model is not model
        for w, b in zip(model.weights, before.weights):
            np.testing.assert_array_equal(w, b)
        assert [w.shape for w in ctx.weights] == [w.shape for w in model.weights]

    def test_epoch_callback_gets_snapshots(self):
        from mlpforge.data import truth_table
        from mlpforge.model import Model, RELU, SIGMOID
        from mlpforge.training import TrainingContext
        ctx = TrainingContext(Model.random(2, RELU, SIGMOID, 2, 4, 1))
        seen = []
        ctx.train_chunked(
            truth_table("or"), 6, 2, 1, 0.5,
            lambda epoch, current: seen.append((epoch, current)),
        )
        assert [epoch for epoch, _ in seen] == list(range(6))
        # 4 chunks per epoch and 2 workers: a fresh snapshot every epoch.
        snapshots = [current for _, current in seen]
        assert len({id(s) for s in snapshots}) == 6

    def test_snapshot_folds_whole_groups(self):
        """The first snapshot is the start model plus one accumulator per worker."""
        from mlpforge.data import truth_table
        from mlpforge.model import Model, RELU, SIGMOID
        from mlpforge.training import TrainingContext
        data = truth_table("or")[1:3]
        start = Model.random(6, RELU, SIGMOID, 2, 3, 1)

        expected = [w.copy() for w in start.weights]
        for example in data:
            changes = [np.zeros_like(w) for w in start.weights]
            ctx = TrainingContext(start.clone())
            ctx.feed_forward(example.input)
            ctx.back_propagate(example.target, 0.5, changes)
            for w, c in zip(expected, changes):
                w += c

        seen = []
        ctx = TrainingContext(start.clone())
        ctx.train_chunked(
            data, 1, 2, 1, 0.5, lambda epoch, current: seen.append(current)
        )
        assert len(seen) == 1
        for snap, final, want in zip(seen[0].weights, ctx.model.weights, expected):
            np.testing.assert_allclose(snap, want, rtol=0, atol=1e-12)
            np.testing.assert_allclose(final, want, rtol=0, atol=1e-12)

    def test_layer_update_error_is_forwarded(self):
        """A failing layer update reaches the driver instead of stalling the barrier."""
        import queue
        from mlpforge.model import Model, TANH, linear
        from mlpforge.training import ChunkedScheduler
        from mlpforge.training.scheduler import _CLOSED, _Failure
        model = Model.random(4, TANH, linear(1), 2, 3, 1)
        results, snapshots = queue.Queue(), queue.Queue()
        # first layer is 3x3, so this increment cannot be added
        results.put([np.zeros((5, 5)), np.zeros((1, 4))])

        aggregator = threading.Thread(
            target=ChunkedScheduler(1, 1, 0.1)._aggregate,
            args=(model, results, snapshots),
            daemon=True,
        )
        aggregator.start()
        first = snapshots.get(timeout=5)
        assert isinstance(first, _Failure)
        assert isinstance(first.error, ValueError)

        results.put(_CLOSED)
        aggregator.join(timeout=5)
        assert not aggregator.is_alive()
        assert snapshots.get(timeout=1) is _CLOSED

    def test_uneven_chunks(self):
        from mlpforge.data import as_training_set
        from mlpforge.model import Model, TANH, linear
        from mlpforge.training import TrainingContext
        rng = np.random.default_rng(0)
        data = as_training_set((rng.random(3), rng.random(2)) for _ in range(7))
        ctx = TrainingContext(Model.random(1, TANH, linear(1), 3, 4, 2))
        ctx.train_chunked(data, 5, 3, 3, 0.05)
        assert not ctx.model.has_nan()

    def test_empty_training_set(self):
        from mlpforge.model import Model, TANH
        from mlpforge.training import TrainingContext
        model = Model.random(1, TANH, TANH, 2, 2, 1)
        ctx = TrainingContext(model)
        ctx.train_chunked([], 3, 2, 2, 0.1)
        for w, b in zip(ctx.weights, model.weights):
            np.testing.assert_array_equal(w, b)

    def test_regression_converges(self):
        from mlpforge.data import truth_table
        from mlpforge.training import TrainingContext
        data = truth_table("doubling")
        for seed in (3453, 9988, 17):
            ctx = TrainingContext(_regression_model(seed))
            ctx.train_chunked(data, 30000, 2, 2, 0.1)
            if _all_rounded_correctly(ctx.model, data):
                break
        else:
            pytest.fail("chunked regression did not converge for any seed")

    def test_worker_error_propagates(self):
        """A bad example fails the run instead of hanging the pipeline."""
        from mlpforge.data import TrainingExample
        from mlpforge.model import Model, RELU, SIGMOID
        from mlpforge.training import TrainingContext
        data = [
            TrainingExample(np.array([1.0, 0.0]), np.array([1.0])),
            TrainingExample(np.array([1.0, 0.0, 1.0]), np.array([1.0])),
        ]
        ctx = TrainingContext(Model.random(3, RELU, SIGMOID, 2, 4, 1))
        with pytest.raises(ValueError, match="input size"):
            ctx.train_chunked(data, 5, 2, 1, 0.1)

    @pytest.mark.parametrize("workers,chunk_size", [(0, 1), (1, 0)])
    def test_invalid_settings(self, workers, chunk_size):
        from mlpforge.training import ChunkedScheduler
        with pytest.raises(ValueError):
            ChunkedScheduler(workers, chunk_size, 0.1)


# =============================================================================
# Worker Pool Tests
# =============================================================================

class TestWorkerPool:
    """Tests for WaitGroup and WorkerPool."""

    def test_runs_all_jobs(self):
        from mlpforge.training import WorkerPool
        pool = WorkerPool()
        pool.start(4)
        lock = threading.Lock()
        counter = {"n": 0}

        def job():
            with lock:
                counter["n"] += 1

        for _ in range(50):
            pool.go(job)
        pool.wait()
        pool.stop()
        assert counter["n"] == 50

    def test_restart(self):
        from mlpforge.training import WorkerPool
        pool = WorkerPool()
        results = []
        for size in (1, 3):
            pool.start(size)
            pool.go(lambda: results.append(size))
            pool.stop()
            pool.wait()
        assert sorted(results) == [1, 3]

    def test_job_error_is_reraised(self):
        from mlpforge.training import WorkerPool
        pool = WorkerPool()
        pool.start(2)

        def boom():
            raise KeyError("boom")

        pool.go(boom)
        pool.go(lambda: None)
        with pytest.raises(KeyError):
            pool.wait()
        pool.stop()

    def test_go_before_start(self):
        from mlpforge.training import WorkerPool
        with pytest.raises(RuntimeError):
            WorkerPool().go(lambda: None)

    def test_wait_group(self):
        from mlpforge.training import WaitGroup
        wg = WaitGroup()
        wg.add(3)
        for _ in range(3):
            threading.Thread(target=wg.done).start()
        wg.wait()
        with pytest.raises(ValueError):
            wg.done()
        # the rejected done() leaves the counter at zero
        waiter = threading.Thread(target=wg.wait, daemon=True)
        waiter.start()
        waiter.join(timeout=1.0)
        assert not waiter.is_alive()
        wg.add(1)
        wg.done()
        wg.wait()


# =============================================================================
# Data Tests
# =============================================================================

class TestData:
    """Tests for training examples and datasets."""

    def test_chunked(self):
        from mlpforge.data import chunked, truth_table
        data = truth_table("and") + truth_table("or")[:1]
        chunks = chunked(data, 2)
        assert [len(c) for c in chunks] == [2, 2, 1]
        assert chunks[1][0] is data[2]
        with pytest.raises(ValueError):
            chunked(data, 0)

    def test_truth_tables(self):
        from mlpforge.data import truth_table
        xor = truth_table("XOR")
        assert [ex.target[0] for ex in xor] == [0, 1, 1, 0]
        with pytest.raises(ValueError, match="Unknown dataset"):
            truth_table("nand")

    def test_mixed_widths_rejected(self):
        from mlpforge.data import as_training_set
        with pytest.raises(ValueError):
            as_training_set([([1, 2], [1]), ([1], [1])])

    def test_nested_examples_rejected(self):
        from mlpforge.data import as_training_set
        with pytest.raises(ValueError, match="1-D"):
            as_training_set([([[1, 2]], [1])])
        scalar = as_training_set([(3, 6)])
        np.testing.assert_array_equal(scalar[0].input, [3.0])

    def test_load_yaml(self, tmp_path):
        from mlpforge.data import load_training_set
        path = tmp_path / "data.yaml"
        path.write_text(
            "examples:\n"
            "  - input: [0, 1]\n"
            "    target: [1]\n"
            "  - input: [1, 1]\n"
            "    target: [0]\n",
            encoding="utf-8",
        )
        data = load_training_set(path)
        assert len(data) == 2
        np.testing.assert_array_equal(data[1].input, [1.0, 1.0])

    def test_load_errors(self, tmp_path):
        from mlpforge.data import load_training_set
        with pytest.raises(FileNotFoundError):
            load_training_set(tmp_path / "missing.yaml")
        empty = tmp_path / "empty.yaml"
        empty.write_text("", encoding="utf-8")
        with pytest.raises(ValueError):
            load_training_set(empty)
        bad = tmp_path / "bad.yaml"
        bad.write_text("examples:\n  - input: [1]\n", encoding="utf-8")
        with pytest.raises(ValueError, match="target"):
            load_training_set(bad)


# =============================================================================
# Config Tests
# =============================================================================

class TestConfig:
    """Tests for the configuration system."""

    def test_default_config_loads(self):
        from mlpforge.config import MLPForgeConfig
        MLPForgeConfig().validate()

    def test_smoke_test_config(self):
        from mlpforge.config import MLPForgeConfig
        config = MLPForgeConfig.for_smoke_test()
        config.validate()
        assert config.training.mode == "chunked"

    def test_build_model(self):
        from mlpforge.config import ModelConfig
        model = ModelConfig(layer_sizes=[1, 3, 3, 1], internal_activation="sigmoid",
                            output_activation="linear(1.0)").build()
        assert model.layer_sizes == [1, 3, 3, 1]
        assert model.output.name == "linear(1.0)"

    def test_invalid_activation(self):
        from mlpforge.config import ModelConfig
        with pytest.raises(ValueError):
            ModelConfig(internal_activation="softmax").validate()

    def test_invalid_mode(self):
        from mlpforge.config import TrainingConfig
        with pytest.raises(ValueError, match="mode"):
            TrainingConfig(mode="async").validate()

    def test_dataset_width_mismatch(self):
        from mlpforge.config import DataConfig, MLPForgeConfig, ModelConfig
        config = MLPForgeConfig(
            model=ModelConfig(layer_sizes=[2, 4, 1]),
            data=DataConfig(dataset="doubling"),
        )
        with pytest.raises(ValueError, match="layer_sizes"):
            config.validate()

    def test_yaml_round_trip(self, tmp_path):
        from mlpforge.config import MLPForgeConfig
        config = MLPForgeConfig.for_smoke_test()
        path = tmp_path / "config.yaml"
        config.to_yaml(path)
        loaded = MLPForgeConfig.from_yaml(path)
        assert loaded.to_dict() == config.to_dict()

    def test_missing_file(self, tmp_path):
        from mlpforge.config import MLPForgeConfig
        with pytest.raises(FileNotFoundError):
            MLPForgeConfig.from_yaml(tmp_path / "nope.yaml")

    def test_shipped_configs_load(self):
        from mlpforge.config import MLPForgeConfig
        root = Path(__file__).resolve().parent.parent / "configs"
        for name in ("default.yaml", "doubling.yaml"):
            MLPForgeConfig.from_yaml(root / name)


# =============================================================================
# Trainer & Evaluation Tests
# =============================================================================

class TestTrainer:
    """Tests for the configured trainer and metrics."""

    def test_sequential_results(self):
        from mlpforge.config import MLPForgeConfig, TrainingConfig
        from mlpforge.training import Trainer
        config = MLPForgeConfig(training=TrainingConfig(epochs=30, log_every=10))
        trainer = Trainer(config.model.build(), config)
        results = trainer.train(config.data.load())
        assert results["epochs"] == 30
        assert len(results["epoch_losses"]) == 30
        assert results["final_loss"] == results["epoch_losses"][-1]
        assert results["nan_epoch"] is None

    def test_chunked_results(self):
        from mlpforge.config import MLPForgeConfig
        from mlpforge.training import Trainer
        config = MLPForgeConfig.for_smoke_test()
        trainer = Trainer(config.model.build(), config)
        seen = []
        results = trainer.train(config.data.load(), on_epoch=lambda epoch, loss: seen.append(epoch))
        assert results["epochs"] == config.training.epochs
        assert seen == list(range(config.training.epochs))

    def test_nan_is_reported_not_raised(self, caplog):
        from mlpforge.config import MLPForgeConfig, TrainingConfig
        from mlpforge.training import Trainer
        config = MLPForgeConfig(training=TrainingConfig(epochs=3, log_every=0))
        model = config.model.build()
        model.weights[0][0, 0] = float("nan")
        trainer = Trainer(model, config)
        with caplog.at_level("WARNING"):
            results = trainer.train(config.data.load())
        assert results["nan_epoch"] == 0
        assert results["epochs"] == 3
        assert "NaN" in caplog.text

    def test_metrics(self):
        from mlpforge.data import as_training_set
        from mlpforge.evaluation import evaluate, example_loss
        assert example_loss([7.0], [5.0]) == 2.0
        data = as_training_set([([1, 0], [7]), ([1, 2], [27]), ([0, 0], [1])])
        results = evaluate(_linear_model(), data)
        assert results["rounded_accuracy"] == pytest.approx(2 / 3)
        assert results["total_error"] == pytest.approx(0.5)
        assert results["examples"] == 3

    def test_timer_per_epoch(self, caplog):
        from mlpforge.evaluation import Timer
        with caplog.at_level("INFO"):
            with Timer("sequential", epochs=4) as t:
                sum(range(10000))
        assert t.elapsed > 0
        assert t.per_epoch == pytest.approx(t.elapsed / 4)
        assert "[sequential]" in caplog.text
        assert "ms/epoch" in caplog.text
        with Timer("setup") as untimed:
            pass
        assert untimed.per_epoch == 0.0


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
