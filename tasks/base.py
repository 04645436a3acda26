# Gacc: Symbolic Geometric Algebra Compiler
# Copyright (C) 2026 The Gacc Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

import torch
from abc import ABC, abstractmethod
from tqdm import tqdm
from omegaconf import DictConfig
from log import get_logger
from core.device import DeviceConfig
from core.engine import Engine

logger = get_logger(__name__)


class BaseTask(ABC):
    """Abstract base class for all evaluation tasks.

    Lifecycle: setup_algebra → (engine) → get_data → compute_step → evaluate.

    Attributes:
        cfg (DictConfig): Hydra configuration.
        device (str): Computation device.
        device_config (DeviceConfig): Device and dtype configuration.
        algebra (CliffordAlgebra): Symbolic algebra.
        engine (Engine): Compiling evaluator bound to ``algebra``.
        iterations (int): Number of batches to evaluate.
    """

    def __init__(self, cfg: DictConfig):
        """Sets up the task.

        Args:
            cfg (DictConfig): Hydra config.
        """
        self.cfg = cfg

        self.device_config = DeviceConfig(
            device=cfg.algebra.get('device', 'auto'),
            dtype=cfg.algebra.get('dtype', 'float32'),
        )
        self.device = self.device_config.device

        if cfg.get('seed') is not None:
            torch.manual_seed(cfg.seed)

        self.algebra = self.setup_algebra()
        self.engine = Engine(
            self.algebra,
            self.device_config,
            cse=cfg.compiler.get('cse', True),
        )
        self.iterations = cfg.run.iterations

    @abstractmethod
    def setup_algebra(self):
        """Initialize the Clifford algebra."""
        pass

    @abstractmethod
    def get_data(self):
        """Sample one batch of input entities."""
        pass

    @abstractmethod
    def compute_step(self, data):
        """Evaluate one batch. Returns ``(error, logs)``."""
        pass

    @abstractmethod
    def evaluate(self, errors):
        """Summarize the per-batch errors."""
        pass

    def run(self):
        """Execute the evaluation loop."""
        logger.info("Starting Task: %s", self.cfg.name)

        errors = []
        pbar = tqdm(range(self.iterations))
        with torch.no_grad():
            for _ in pbar:
                data = self.get_data()
                error, logs = self.compute_step(data)
                errors.append(error)
                desc = " | ".join([f"{k}: {v:.3e}" for k, v in logs.items()])
                pbar.set_description(desc)

        logger.info("Evaluation Complete.")
        return self.evaluate(errors)
