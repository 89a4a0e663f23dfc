"""
utils/seed.py - 随机种子管理

统一管理扰动打破力平衡时使用的随机源。
"""

import time
from typing import Optional

import numpy as np


def make_seed(seed: Optional[int] = None) -> int:
    """seed 为 None 时用当前时间戳生成; 否则原样返回."""
    if seed is None:
        return int(time.time() * 1000) % (2**31)
    return seed


def make_rng(
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
) -> np.random.Generator:
    """返回 numpy Generator; 传入 rng 时直接复用."""
    if rng is not None:
        return rng
    return np.random.default_rng(make_seed(seed))
