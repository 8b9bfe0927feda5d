"""
Tests for activations, regularizations and error functions.
"""

import warnings

import numpy as np
import pytest

from ltrnet.activation import LeakyReLU, ReLU, Sigmoid, Tanh, get_activation
from ltrnet.exceptions import ConfigurationError
from ltrnet.loss import Entropy, Square, get_error
from ltrnet.regularization import L1, L2, get_regularization


class TestActivation:
    def test_sigmoid(self):
        s = Sigmoid()
        assert s.output(np.array([0.0]))[0] == pytest.approx(0.5)
        assert s.derivative(np.array([0.0]))[0] == pytest.approx(0.25)

    def test_sigmoid_saturates_without_overflow(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            out = Sigmoid().output(np.array([-1000.0, 1000.0]))
        np.testing.assert_allclose(out, [0.0, 1.0])

    def test_relu(self):
        x = np.array([-1.0, 0.0, 2.0])
        np.testing.assert_array_equal(ReLU().output(x), [0.0, 0.0, 2.0])
        np.testing.assert_array_equal(ReLU().derivative(x), [0.0, 0.0, 1.0])

    def test_leaky_relu(self):
        act = LeakyReLU(slope=0.1)
        np.testing.assert_allclose(act.output(np.array([-2.0, 3.0])), [-0.2, 3.0])
        np.testing.assert_allclose(act.derivative(np.array([-2.0, 3.0])), [0.1, 1.0])

    def test_tanh_derivative(self):
        x = np.array([0.3])
        eps = 1e-6
        numeric = (Tanh().output(x + eps) - Tanh().output(x - eps)) / (2 * eps)
        np.testing.assert_allclose(Tanh().derivative(x), numeric, rtol=1e-6)

    @pytest.mark.parametrize("name, cls", [("Sigmoid", Sigmoid), ("RELU", ReLU), ("leaky_relu", LeakyReLU)])
    def test_lookup(self, name, cls):
        assert isinstance(get_activation(name), cls)

    def test_unknown(self):
        with pytest.raises(ConfigurationError):
            get_activation("softsign")


class TestRegularization:
    def test_l1_derivative_is_sign(self):
        np.testing.assert_array_equal(L1().derivative(np.array([-0.3, 0.0, 2.0])), [-1.0, 0.0, 1.0])

    def test_l2_derivative_is_weight(self):
        np.testing.assert_array_equal(L2().derivative(np.array([-0.3, 2.0])), [-0.3, 2.0])

    @pytest.mark.parametrize("name", [None, "", "none", "None"])
    def test_disabled(self, name):
        assert get_regularization(name) is None

    def test_lookup(self):
        assert isinstance(get_regularization("L1"), L1)
        assert isinstance(get_regularization("l2"), L2)
        with pytest.raises(ConfigurationError):
            get_regularization("elastic")


class TestErrorFunctions:
    def test_square(self):
        sq = Square()
        np.testing.assert_allclose(sq.error(np.array([0.8, 0.1]), np.array([1.0, 0.0])), [0.02, 0.005])
        np.testing.assert_allclose(sq.derivative(np.array([0.8, 0.1]), np.array([1.0, 0.0])), [-0.2, 0.1])

    def test_entropy_derivative(self):
        ent = Entropy()
        o, t, eps = 0.3, 1.0, 1e-7
        numeric = (ent.error(o + eps, t) - ent.error(o - eps, t)) / (2 * eps)
        assert float(ent.derivative(o, t)) == pytest.approx(float(numeric), rel=1e-5)

    def test_lookup(self):
        assert isinstance(get_error("Square"), Square)
        with pytest.raises(ConfigurationError):
            get_error("hinge")
