import dataclasses

import numpy as np
import numpy.testing as npt
import pytest

from tubeUnwrap3D.Parameters import params
from tubeUnwrap3D.Unzipping import sequence


NU, NV = 6, 20


def _mean_nearest_distance(a, b):
    from scipy.spatial.distance import cdist
    return cdist(a, b).min(axis=1).mean()


@pytest.fixture
def surfaces(tube_factory):
    out = []
    for tt, angle in enumerate([0., 2*np.pi*0.1, 2*np.pi*0.15]):
        faces, vertices, normals = tube_factory(NU, NV, angle=angle)
        out.append(sequence.TimepointSurface(faces=faces, vertices=vertices, vertex_normals=normals,
                                             cp1=0, cp2=(NU-1)*NV, time=float(tt)))
    return out


def test_pullback_timeseries_registers_rotations(surfaces):
    pullbacks = sequence.pullback_timeseries(surfaces, show_progress=False, nU=NU, nV=NV)

    assert len(pullbacks) == 3
    npt.assert_array_equal(pullbacks[0].phi0s, 0.)
    npt.assert_allclose(pullbacks[1].phi0s, -0.1, atol=1e-3)
    npt.assert_allclose(pullbacks[2].phi0s, -0.15, atol=1e-3)

    for pb in pullbacks:
        assert pb.grid.shape == (NU, NV, 3)
        assert pb.cut_mesh.euler_characteristic() == 1
        npt.assert_allclose(pb.grid, pullbacks[0].grid, atol=0.05)


def test_first_timepoint_is_unregistered(surfaces):
    pb = sequence.pullback_timepoint(surfaces[0], prev=None, nU=NU, nV=NV)
    assert pb.time == 0.
    assert (pb.cp1, pb.cp2) == (0, (NU-1)*NV)
    npt.assert_array_equal(pb.path, [i*NV for i in range(NU)])
    npt.assert_allclose(pb.uspace, np.linspace(0, 1, NU))
    assert pb.vspace[-1] < 1.


def test_nearest_cut_follows_previous_path(surfaces):
    nearest_params = params.nearest_path_params()
    nearest_params['metric'] = _mean_nearest_distance
    # the same surface twice: the previous seam is a mesh path of the current surface
    still = [surfaces[0], dataclasses.replace(surfaces[0], time=1.)]
    pullbacks = sequence.pullback_timeseries(still, show_progress=False, nU=NU, nV=NV,
                                             method='nearest', nearest_params=nearest_params)
    npt.assert_array_equal(pullbacks[1].path, [i*NV for i in range(NU)])
    npt.assert_allclose(np.mod(pullbacks[1].phi0s + 0.5, 1) - 0.5, 0., atol=1e-3)


def test_grid_mismatch(surfaces):
    pb = sequence.pullback_timepoint(surfaces[0], nU=NU, nV=NV)
    with pytest.raises(ValueError):
        sequence.pullback_timepoint(surfaces[1], prev=pb, nU=NU, nV=NV+1)


def test_iterative_registration_and_normal_shift(surfaces):
    registration_params = params.iterative_phi0_params()
    registration_params['smooth_window'] = 3
    registration_params['smooth_polyorder'] = 1
    pb0 = sequence.pullback_timepoint(surfaces[0], nU=NU, nV=NV, normal_shift=0.1)
    pb1 = sequence.pullback_timepoint(surfaces[1], prev=pb0, nU=NU, nV=NV, normal_shift=0.1,
                                      iterative_phi0=True, registration_params=registration_params)

    npt.assert_allclose(np.linalg.norm(pb0.cut_mesh.vertices[:,:2], axis=1), 1.1)
    npt.assert_allclose(np.mod(pb1.phi0s + 0.5, 1) - 0.5, -0.1, atol=2e-3)
