"""
Deep Q-Network (DQN) Architecture
=================================

The approximator that maps an observation to one value estimate per action.

    Input:  7-element observation
    Hidden: fully connected layers (default [24, 24]) with ReLU
    Output: Q-value for each of the 4 actions (linear)

Training minimizes the squared TD error:
    Loss = (Q(s,a) - (r + γ * max_a' Q(s', a')))²
"""

import torch
import torch.nn as nn
import torch.nn.functional as F
from typing import Any, Callable, Dict, List, Optional

from config import Config


ACTIVATIONS: Dict[str, Callable[..., Any]] = {
    'relu': F.relu,
    'leaky_relu': F.leaky_relu,
    'tanh': torch.tanh,
    'elu': F.elu,
}


class DQN(nn.Module):
    """
    Deep Q-Network for reinforcement learning.

    Architecture:
        Input Layer → Hidden Layers → Output Layer

    Attributes:
        layers (nn.ModuleList): All linear layers, input to output

    Example:
        >>> net = DQN(state_size=7, action_size=4)
        >>> q_values = net(torch.zeros(1, 7))  # Shape: (1, 4)
    """

    def __init__(
        self,
        state_size: int,
        action_size: int,
        config: Optional[Config] = None,
        hidden_layers: Optional[List[int]] = None,
        activation: Optional[str] = None,
    ):
        """
        Initialize the DQN.

        Args:
            state_size: Dimension of state input
            action_size: Number of possible actions (output dimension)
            config: Configuration object
            hidden_layers: Override config's hidden layer sizes
            activation: Override config's activation name
        """
        super().__init__()

        self.config = config or Config()
        self.state_size = state_size
        self.action_size = action_size
        self.hidden_sizes = list(hidden_layers if hidden_layers is not None else self.config.HIDDEN_LAYERS)
        self.activation = activation or self.config.ACTIVATION

        if self.activation not in ACTIVATIONS:
            raise ValueError(f"Unknown activation '{self.activation}'. "
                             f"Choose from {sorted(ACTIVATIONS)}")
        self._activation_fn = ACTIVATIONS[self.activation]

        self.layers = nn.ModuleList()
        self._build_network()
        self._init_weights()

    def _build_network(self) -> None:
        """Construct the neural network layers."""
        layer_sizes = [self.state_size] + self.hidden_sizes + [self.action_size]

        for i in range(len(layer_sizes) - 1):
            self.layers.append(nn.Linear(layer_sizes[i], layer_sizes[i + 1]))

    def _init_weights(self) -> None:
        """Xavier/Glorot uniform weights, zero biases."""
        for layer in self.layers:
            if isinstance(layer, nn.Linear):
                nn.init.xavier_uniform_(layer.weight)
                nn.init.constant_(layer.bias, 0.0)

    def forward(self, state: torch.Tensor) -> torch.Tensor:
        """
        Forward pass through the network.

        Args:
            state: Input state tensor of shape (batch_size, state_size)

        Returns:
            Q-values tensor of shape (batch_size, action_size)
        """
        x = state
        for layer in self.layers[:-1]:
            x = self._activation_fn(layer(x))

        # Output layer (no activation - raw Q-values)
        return self.layers[-1](x)

    def get_topology(self) -> Dict[str, Any]:
        """Architecture description, enough to rebuild an identical network."""
        return {
            'state_size': self.state_size,
            'action_size': self.action_size,
            'hidden_layers': list(self.hidden_sizes),
            'activation': self.activation,
        }

    @classmethod
    def from_topology(cls, topology: Dict[str, Any], config: Optional[Config] = None) -> 'DQN':
        """Build a freshly initialized network matching a topology dict."""
        return cls(
            state_size=int(topology['state_size']),
            action_size=int(topology['action_size']),
            config=config,
            hidden_layers=[int(size) for size in topology['hidden_layers']],
            activation=str(topology['activation']),
        )

    def get_layer_info(self) -> List[Dict]:
        """
        Get information about each layer.

        Returns:
            List of dicts with layer metadata
        """
        info = [{'name': 'Input', 'neurons': self.state_size, 'type': 'input'}]
        for i, layer in enumerate(self.layers[:-1]):
            info.append({'name': f'Hidden {i + 1}', 'neurons': layer.out_features, 'type': 'hidden'})
        info.append({'name': 'Output', 'neurons': self.action_size, 'type': 'output'})
        return info

    def count_parameters(self) -> int:
        """Return total number of trainable parameters."""
        return sum(p.numel() for p in self.parameters() if p.requires_grad)
