"""
ltrnet/network.py - Layered feed-forward network with batched weight updates

The graph is stored as an arena: for every non-input layer `l` there is one
weight matrix of shape (layer size, previous layer size + 1). Row `j` holds
the incoming edges of node `j`; column 0 is the bias edge (constant source
output 1) and column `k > 0` connects from node `k - 1` of layer `l - 1`.
The outgoing edges of a node are therefore a column of the next layer's
matrix, so both directions are O(1) to reach.

A Network is NOT reentrant: forward/back_prop/update_weights share per-node
and per-edge scratch state and must not run concurrently on one instance.
"""

import logging
from typing import List, NamedTuple, Optional, Sequence, Tuple, Type

import numpy as np

from .activation import Activation, get_activation
from .exceptions import ConfigurationError, DimensionMismatchError
from .loss import ErrorFunction
from .optimizer import SGD, Optimizer
from .regularization import L1, Regularization

logger = logging.getLogger(__name__)

BIAS_WEIGHT = 0.01

WEIGHT_INITS = ('zero', 'uniform', 'gaussian', 'xavier', 'he')


class Edge(NamedTuple):
    """Read-only view of one edge, addressed by (layer, node, index)"""
    layer: int
    node: int
    index: int
    source: Optional[int]  # node index in layer - 1, None for the bias edge
    weight: float
    acc_error_der: float
    dead: bool

    @property
    def is_bias(self) -> bool:
        return self.index == 0


def init_weights(weight_init: str, shape: Tuple[int, int],
                 rng: np.random.Generator) -> np.ndarray:
    """Initial weights for a layer; column 0 (bias) is set to a constant"""
    n_out, n_cols = shape
    fan_in = n_cols - 1
    size = (n_out, fan_in)

    if weight_init == 'zero':
        w = np.zeros(size)
    elif weight_init == 'uniform':
        w = rng.uniform(-1.0, 1.0, size)
    elif weight_init == 'gaussian':
        w = rng.standard_normal(size)
    elif weight_init == 'xavier':
        w = rng.standard_normal(size) * np.sqrt(2.0 / (fan_in + n_out))
    elif weight_init == 'he':
        w = rng.standard_normal(size) * np.sqrt(2.0 / fan_in)
    else:
        raise ConfigurationError(
            f"Unknown weight initialization {weight_init!r}. Available: {', '.join(WEIGHT_INITS)}"
        )

    return np.hstack([np.full((n_out, 1), BIAS_WEIGHT), w])


class Network:
    """Feed-forward network: forward pass, backpropagation, batched updates"""

    def __init__(self, input_dim: int,
                 layers: Sequence[Tuple[int, Activation]],
                 optimizer: Type[Optimizer] = SGD,
                 regularization: Optional[Regularization] = None,
                 weight_init: str = 'xavier',
                 rng: Optional[np.random.Generator] = None):
        """
        Build the arena

        Args:
            input_dim: Number of input nodes (dimension of the feature space)
            layers: (size, activation) for every hidden layer and the output layer
            optimizer: Optimizer class, instantiated once per layer
            regularization: Weight penalty, or None
            weight_init: zero | uniform | gaussian | xavier | he
            rng: Source of randomness for weight initialization
        """
        if input_dim < 1:
            raise ConfigurationError(f"input_dim must be positive, got {input_dim}")
        if not layers:
            raise ConfigurationError("Network needs at least an output layer")

        rng = rng if rng is not None else np.random.default_rng()
        self.regularization = regularization
        self.weight_init = weight_init

        self.layer_sizes = [int(input_dim)]
        self.activations: List[Optional[Activation]] = [None]
        for size, activation in layers:
            if isinstance(activation, str):
                activation = get_activation(activation)
            if int(size) < 1:
                raise ConfigurationError(f"Layer size must be positive, got {size}")
            self.layer_sizes.append(int(size))
            self.activations.append(activation)

        # Index 0 is the input layer, which owns no incoming edges
        self.weights: List[Optional[np.ndarray]] = [None]
        self.dead: List[Optional[np.ndarray]] = [None]
        self.acc_error_der: List[Optional[np.ndarray]] = [None]
        self.optimizers: List[Optional[Optimizer]] = [None]
        for l in range(1, len(self.layer_sizes)):
            shape = (self.layer_sizes[l], self.layer_sizes[l - 1] + 1)
            self.weights.append(init_weights(weight_init, shape, rng))
            self.dead.append(np.zeros(shape, dtype=bool))
            self.acc_error_der.append(np.zeros(shape))
            self.optimizers.append(optimizer(shape))

        # Per-node scratch state, refreshed on every pass
        self.total_input = [np.zeros(n) for n in self.layer_sizes]
        self.output = [np.zeros(n) for n in self.layer_sizes]
        self.output_der = [np.zeros(n) for n in self.layer_sizes]
        self.input_der = [np.zeros(n) for n in self.layer_sizes]

        self.num_accumulated_der = 0
        self.iteration = 1

    @property
    def input_dim(self) -> int:
        return self.layer_sizes[0]

    @property
    def output_dim(self) -> int:
        return self.layer_sizes[-1]

    @property
    def num_layers(self) -> int:
        return len(self.layer_sizes)

    def _live_weights(self, layer: int) -> np.ndarray:
        return np.where(self.dead[layer], 0.0, self.weights[layer])

    def edge(self, layer: int, node: int, index: int) -> Edge:
        if layer < 1:
            raise IndexError("The input layer has no incoming edges")
        return Edge(
            layer=layer,
            node=node,
            index=index,
            source=None if index == 0 else index - 1,
            weight=float(self.weights[layer][node, index]),
            acc_error_der=float(self.acc_error_der[layer][node, index]),
            dead=bool(self.dead[layer][node, index]),
        )

    def forward(self, features: Sequence[float]) -> np.ndarray:
        """
        Evaluate the network

        Args:
            features: Values for the input nodes, length `input_dim`

        Returns:
            Outputs of the final layer's nodes, in node order
        """
        x = np.asarray(features, dtype=float)
        if x.ndim != 1 or x.shape[0] != self.input_dim:
            raise DimensionMismatchError(
                f"Expected {self.input_dim} features, got {x.shape[0] if x.ndim == 1 else x.shape}"
            )

        self.total_input[0] = x.copy()
        self.output[0] = x.copy()
        for l in range(1, self.num_layers):
            w = self._live_weights(l)
            z = w[:, 0] + w[:, 1:] @ self.output[l - 1]
            self.total_input[l] = z
            self.output[l] = self.activations[l].output(z)

        return self.output[-1].copy()

    def back_prop(self, target, error_func: ErrorFunction) -> None:
        """
        Accumulate ∂C/∂w for the most recent forward pass

        `target` is a single real for a one-output network, or one real per
        output node. All output derivatives are seeded before the downward
        sweep starts. Weights are left untouched; see update_weights.
        """
        targets = np.atleast_1d(np.asarray(target, dtype=float))
        if targets.shape != (self.output_dim,):
            raise DimensionMismatchError(
                f"Expected {self.output_dim} targets, got {targets.size}"
            )

        self.output_der[-1] = np.asarray(
            error_func.derivative(self.output[-1], targets), dtype=float
        )
        self._propagate()
        self.num_accumulated_der += 1

    def _propagate(self) -> None:
        """Sweep from the output layer down to layer 1 using seeded output derivatives"""
        for l in range(self.num_layers - 1, 0, -1):
            in_der = self.activations[l].derivative(self.total_input[l]) * self.output_der[l]
            self.input_der[l] = in_der

            grad = np.empty_like(self.weights[l])
            grad[:, 0] = in_der  # bias source output is 1
            grad[:, 1:] = np.outer(in_der, self.output[l - 1])
            grad[self.dead[l]] = 0.0
            self.acc_error_der[l] += grad

            if l > 1:
                # ∂C/∂O_k = Σ_j w_jk * ∂C/∂I_j over outgoing edges of k
                self.output_der[l - 1] = self._live_weights(l)[:, 1:].T @ in_der

    def update_weights(self, learning_rate: float, regularization_rate: float) -> None:
        """
        Apply the accumulated derivatives, averaged over the batch

        The iteration counter advances on every call, even when nothing has
        been accumulated, so optimizer schedules follow update calls.
        """
        n = self.num_accumulated_der
        if n > 0:
            logger.debug(f"Update {self.iteration}: averaging {n} accumulated samples")
            num_pruned = 0
            for l in range(1, self.num_layers):
                live = ~self.dead[l]
                old = self.weights[l]

                delta = self.optimizers[l].optimize(self.acc_error_der[l], learning_rate, self.iteration)
                weight = old + delta / n

                if self.regularization is not None:
                    penalty = self.regularization.derivative(old)
                    new_weight = weight - penalty * (learning_rate * regularization_rate)
                else:
                    new_weight = weight

                if isinstance(self.regularization, L1):
                    prune = live & (weight * new_weight < 0)
                    prune[:, 0] = False  # bias edges are never pruned
                    if prune.any():
                        new_weight[prune] = 0.0
                        self.dead[l] |= prune
                        num_pruned += int(prune.sum())

                self.weights[l] = np.where(live, new_weight, old)
                self.acc_error_der[l].fill(0.0)

            if num_pruned:
                logger.debug(f"Pruned {num_pruned} edges (L1) at iteration {self.iteration}")

        self.num_accumulated_der = 0
        self.iteration += 1

    def reset_accumulated(self) -> None:
        """Drop accumulated derivatives without touching the weights"""
        for l in range(1, self.num_layers):
            self.acc_error_der[l].fill(0.0)
        self.num_accumulated_der = 0

    def state_dict(self) -> dict:
        """Topology and weights keyed by [layer][node][edge] position"""
        return {
            'input_dim': self.input_dim,
            'layers': [
                {'size': self.layer_sizes[l], 'activation': self.activations[l].name}
                for l in range(1, self.num_layers)
            ],
            'weight_init': self.weight_init,
            'weights': [self.weights[l].tolist() for l in range(1, self.num_layers)],
            'dead': [self.dead[l].tolist() for l in range(1, self.num_layers)],
        }

    @classmethod
    def from_state_dict(cls, d: dict) -> 'Network':
        """Rebuild a network for inference; optimizer state starts fresh"""
        layers = [(layer['size'], get_activation(layer['activation'])) for layer in d['layers']]
        net = cls(int(d['input_dim']), layers, weight_init='zero')
        net.weight_init = d.get('weight_init', 'zero')
        net.weights[1:] = net._checked_arrays(d['weights'], float, 'weights')
        if d.get('dead'):
            net.dead[1:] = net._checked_arrays(d['dead'], bool, 'dead-edge mask')
        return net

    def _checked_arrays(self, per_layer, dtype, what: str) -> List[np.ndarray]:
        """One array per non-input layer, each shaped like that layer's weights"""
        if len(per_layer) != self.num_layers - 1:
            raise DimensionMismatchError(
                f"Expected {what} for {self.num_layers - 1} layers, got {len(per_layer)}"
            )
        arrays = []
        for l, rows in enumerate(per_layer, start=1):
            a = np.asarray(rows, dtype=dtype)
            if a.shape != self.weights[l].shape:
                raise DimensionMismatchError(
                    f"Layer {l} {what} has shape {a.shape}, expected {self.weights[l].shape}"
                )
            arrays.append(a)
        return arrays
