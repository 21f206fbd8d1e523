"""
Variance inflation factors.

VIF_j = 1 / (1 - R²_j), where R²_j comes from regressing column j of
the design matrix on all other columns (with the intercept). Values
above 5-10 are the usual multicollinearity warning signs.
"""

from __future__ import annotations

import numpy as np

from pybootreg.core.compute.linalg.qr import qr_solve
from pybootreg.core.exceptions import ValidationError
from pybootreg.regression.design import Design, INTERCEPT


def variance_inflation(design: Design) -> dict[str, float]:
    """
    VIF for every non-intercept column of a design.

    Requires an intercept and at least two non-intercept columns.
    Perfectly collinear columns get +inf.
    """
    if not design.has_intercept:
        raise ValidationError("VIF requires a model with an intercept")

    names = design.term_names
    cols = [j for j, name in enumerate(names) if name != INTERCEPT]
    if len(cols) < 2:
        raise ValidationError(
            f"VIF requires at least 2 predictor columns, got {len(cols)}"
        )

    X = design.X
    out: dict[str, float] = {}
    for j in cols:
        target = X[:, j]
        others = X[:, [k for k in range(design.p) if k != j]]
        beta, _ = qr_solve(others, target)
        resid = target - others @ np.nan_to_num(beta, nan=0.0)
        tss = float(np.sum((target - target.mean()) ** 2))
        rss = float(resid @ resid)
        if tss == 0:
            out[names[j]] = float('nan')
            continue
        r2 = 1.0 - rss / tss
        out[names[j]] = float('inf') if r2 >= 1.0 - 1e-12 else 1.0 / (1.0 - r2)
    return out
