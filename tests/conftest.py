import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from logit_functions.parameters import default_parameters
from logit_functions.survey_generator import generate_survey_data


@pytest.fixture
def identity_params():
    """Identity correlations, zero means, unit SDs."""
    return np.eye(3), np.ones(3), np.zeros(3)


@pytest.fixture(scope="session")
def tutorial_data():
    params = default_parameters()
    return generate_survey_data(params.correlations, params.stddevs, params.means,
                                n=538, seed=42)


@pytest.fixture(scope="session")
def logit_data():
    """Dataset with a known logistic relationship, independent of the generator."""
    rng = np.random.default_rng(7)
    n = 2000
    refer = rng.integers(0, 2, n)
    jobsat = rng.integers(1, 6, n)
    eta = 0.5 - 0.8 * refer - 0.4 * jobsat
    turnover = rng.binomial(1, 1 / (1 + np.exp(-eta)))
    return pd.DataFrame({"refer": refer, "jobsat": jobsat, "turnover": turnover})
