"""
Model Persistence
=================

Serializes the Q-network into a self-describing, JSON-safe blob and keeps
named blobs in a directory-backed model store.

Blob layout:
    {
        'format':       'invader-dqn/1',
        'model_json':   {'state_size', 'action_size', 'hidden_layers', 'activation'},
        'weight_specs': [{'name', 'shape', 'dtype'}, ...],   # state_dict order
        'weights':      base64 of the concatenated little-endian float32 bytes
    }

Decoding validates the whole blob before any network is touched, so a
malformed blob never leaves a half-loaded model behind.
"""

import base64
import binascii
import json
import re
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import torch

from config import Config
from .network import DQN
from ..utils.logger import get_logger

logger = get_logger(__name__)

BLOB_FORMAT = 'invader-dqn/1'
WEIGHT_DTYPE = np.dtype('<f4')
REQUIRED_KEYS = ('model_json', 'weight_specs', 'weights')
TOPOLOGY_KEYS = ('state_size', 'action_size', 'hidden_layers', 'activation')


class ModelLoadError(ValueError):
    """A persisted model is malformed, incomplete or incompatible."""


class ModelNotFoundError(ModelLoadError):
    """The model store has no record matching the request."""


def encode_network(network: DQN) -> Dict[str, Any]:
    """Serialize a network's topology and weights into a blob."""
    specs = []
    chunks = []
    for name, tensor in network.state_dict().items():
        array = tensor.detach().cpu().numpy().astype(WEIGHT_DTYPE)
        specs.append({'name': name, 'shape': list(array.shape), 'dtype': 'float32'})
        chunks.append(array.tobytes())

    return {
        'format': BLOB_FORMAT,
        'model_json': network.get_topology(),
        'weight_specs': specs,
        'weights': base64.b64encode(b''.join(chunks)).decode('ascii'),
    }


def decode_blob(blob: Any) -> Tuple[Dict[str, Any], 'OrderedDict[str, torch.Tensor]']:
    """
    Validate a blob and unpack it into (topology, state_dict).

    Raises:
        ModelLoadError: If anything about the blob is missing or inconsistent
    """
    if not isinstance(blob, dict):
        raise ModelLoadError(f"Model blob must be a dict, got {type(blob).__name__}")

    for key in REQUIRED_KEYS:
        if blob.get(key) is None:
            raise ModelLoadError(f"Model blob is missing '{key}'")

    fmt = blob.get('format') or BLOB_FORMAT
    if fmt != BLOB_FORMAT:
        raise ModelLoadError(f"Unsupported model format '{fmt}' (expected '{BLOB_FORMAT}')")

    topology = blob['model_json']
    if not isinstance(topology, dict) or any(k not in topology for k in TOPOLOGY_KEYS):
        raise ModelLoadError(f"Model topology must contain {', '.join(TOPOLOGY_KEYS)}")
    hidden = topology['hidden_layers']
    if not isinstance(hidden, list) or not all(
        isinstance(size, int) and not isinstance(size, bool) and size > 0 for size in hidden
    ):
        raise ModelLoadError(f"Model hidden_layers must be positive integers, got {hidden!r}")

    specs = blob['weight_specs']
    if not isinstance(specs, list) or not specs:
        raise ModelLoadError("Model weight_specs must be a non-empty list")

    try:
        raw = base64.b64decode(blob['weights'], validate=True)
    except (binascii.Error, TypeError, ValueError) as e:
        raise ModelLoadError(f"Model weights are not valid base64: {e}") from e

    state_dict: 'OrderedDict[str, torch.Tensor]' = OrderedDict()
    offset = 0
    for spec in specs:
        try:
            name = str(spec['name'])
            shape = tuple(int(dim) for dim in spec['shape'])
            dtype = spec.get('dtype', 'float32')
        except (KeyError, TypeError, ValueError) as e:
            raise ModelLoadError(f"Malformed weight spec {spec!r}") from e
        if dtype != 'float32':
            raise ModelLoadError(f"Unsupported dtype '{dtype}' for weight '{name}'")
        if any(dim < 1 for dim in shape):
            raise ModelLoadError(f"Weight '{name}' has a non-positive dimension in {list(shape)}")

        count = int(np.prod(shape)) if shape else 1
        nbytes = count * WEIGHT_DTYPE.itemsize
        if offset + nbytes > len(raw):
            raise ModelLoadError(f"Weight data too short for '{name}'")

        try:
            array = np.frombuffer(raw, dtype=WEIGHT_DTYPE, count=count, offset=offset).reshape(shape)
        except ValueError as e:
            raise ModelLoadError(f"Weight '{name}' cannot be read as {list(shape)}: {e}") from e
        state_dict[name] = torch.from_numpy(array.astype(np.float32))
        offset += nbytes

    if offset != len(raw):
        raise ModelLoadError(
            f"Weight data has {len(raw) - offset} trailing bytes not described by weight_specs"
        )

    return topology, state_dict


def network_from_blob(blob: Any, config: Optional[Config] = None) -> DQN:
    """Build a new network from a blob. Never mutates an existing network."""
    topology, state_dict = decode_blob(blob)

    try:
        network = DQN.from_topology(topology, config)
    except (TypeError, ValueError, RuntimeError) as e:
        raise ModelLoadError(f"Invalid model topology: {e}") from e

    try:
        network.load_state_dict(state_dict, strict=True)
    except RuntimeError as e:
        raise ModelLoadError(f"Weights do not match topology: {e}") from e

    return network


# =============================================================================
# MODEL STORE
# =============================================================================

@dataclass
class ModelRecord:
    """Index entry for one stored model."""
    name: str
    created_at: str
    path: Path


class ModelStore:
    """
    Directory of named model records, one JSON file each.

    Record fields: name, created_at (ISO-8601 UTC), model_json,
    weight_specs, weights. Several records may share a name; loading by
    name picks the most recent one. I/O errors propagate to the caller.

    Example:
        >>> store = ModelStore('models/store')
        >>> store.save(agent.export_blob(), name='run-1')
        >>> agent.import_blob(store.load_latest())
    """

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def save(self, blob: Dict[str, Any], name: Optional[str] = None) -> ModelRecord:
        """Write a blob as a new record and return its index entry."""
        now = datetime.now(timezone.utc)
        created_at = now.isoformat()
        name = name or f"dqn-model-{created_at}"

        self.directory.mkdir(parents=True, exist_ok=True)
        slug = re.sub(r'[^A-Za-z0-9_.-]+', '_', name).strip('_') or 'model'
        path = self.directory / f"{slug}_{now.strftime('%Y%m%dT%H%M%S%f')}.json"

        record = {'name': name, 'created_at': created_at}
        record.update(blob)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(record, f)

        logger.info("Stored model '%s' at %s", name, path)
        return ModelRecord(name=name, created_at=created_at, path=path)

    def list_models(self) -> List[ModelRecord]:
        """All readable records, newest first."""
        if not self.directory.is_dir():
            return []

        records = []
        for path in self.directory.glob('*.json'):
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                records.append(ModelRecord(name=data['name'], created_at=data['created_at'], path=path))
            except (json.JSONDecodeError, KeyError, TypeError) as e:
                logger.warning("Skipping unreadable model record %s: %s", path, e)

        records.sort(key=lambda r: r.created_at, reverse=True)
        return records

    def load_latest(self) -> Dict[str, Any]:
        """Blob of the most recently created record."""
        records = self.list_models()
        if not records:
            raise ModelNotFoundError(f"No models found in {self.directory}")
        return self._read(records[0])

    def load_named(self, name: str) -> Dict[str, Any]:
        """Blob of the most recent record with the given name."""
        for record in self.list_models():
            if record.name == name:
                return self._read(record)
        raise ModelNotFoundError(f"No model named '{name}' in {self.directory}")

    def _read(self, record: ModelRecord) -> Dict[str, Any]:
        with open(record.path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        logger.info("Loading model '%s' (%s)", record.name, record.created_at)
        return {key: data.get(key) for key in ('format',) + REQUIRED_KEYS}
