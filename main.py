# Gacc: Symbolic Geometric Algebra Compiler
# Copyright (C) 2026 The Gacc Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Gacc CLI Entry Point.

Dispatches formula evaluation tasks::

    python main.py formula=sphere_point_power run.batch=4096
"""

import hydra
from omegaconf import DictConfig
from log import configure
from tasks.formula import FormulaTask


@hydra.main(version_base=None, config_path="conf", config_name="config")
def main(cfg: DictConfig):
    """Runs the configured task.

    Args:
        cfg (DictConfig): The plan.
    """
    configure(level=cfg.get('log_level'))
    task_name = cfg.name

    task_map = {
        'formula': FormulaTask,
    }

    if task_name not in task_map:
        raise ValueError(f"Unknown task: {task_name}. Available: {list(task_map.keys())}")

    TaskClass = task_map[task_name]
    task = TaskClass(cfg)
    return task.run()

if __name__ == "__main__":
    main()
