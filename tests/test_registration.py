import numpy as np
import numpy.testing as npt
import pytest

from tubeUnwrap3D.Registration import registration
from tubeUnwrap3D.Unzipping import unzip
from tubeUnwrap3D.Utility_Functions import exceptions


NU, NV = 6, 20


@pytest.fixture
def pullback_pair(tube_factory):
    """pullbacks of a tube and of the same tube rotated by a tenth of a turn about its axis"""
    out = []
    for angle in [0., 2*np.pi*0.1]:
        faces, vertices, normals = tube_factory(NU, NV, angle=angle)
        cut_mesh, _, _ = unzip.cut_mesh_along_path(faces, vertices, normals, [i*NV for i in range(NU)])
        uv = unzip.rectangular_pullback_cut_mesh(cut_mesh)
        out.append((cut_mesh, uv))
    return out


def test_sample_pullback_grid_shape_and_periodicity(pullback_pair):
    cut_mesh, uv = pullback_pair[0]
    uspace = np.linspace(0, 1, NU)
    vspace = np.linspace(0, 1, NV, endpoint=False)

    grid = registration.sample_pullback_grid(cut_mesh.faces, uv, cut_mesh.vertices, uspace, vspace)
    assert grid.shape == (NU, NV, 3)
    assert np.all(np.isfinite(grid))

    grid_shift = registration.sample_pullback_grid(cut_mesh.faces, uv, cut_mesh.vertices, uspace, vspace, phi0s=np.ones(NU))
    npt.assert_allclose(grid_shift, grid, atol=1e-10)


def test_register_ring_points_is_periodic(pullback_pair):
    cut_mesh, uv = pullback_pair[1]
    v = np.linspace(0, 1, 13, endpoint=False)
    pts_a = registration.register_ring_points(cut_mesh.faces, uv, cut_mesh.vertices, 0.4, v, 0.23)
    pts_b = registration.register_ring_points(cut_mesh.faces, uv, cut_mesh.vertices, 0.4, v, 1.23)
    npt.assert_allclose(pts_a, pts_b, atol=1e-10)


def test_phi_offsets_recover_rotation(pullback_pair):
    (cut0, uv0), (cut1, uv1) = pullback_pair
    uspace = np.linspace(0, 1, NU)
    vspace = np.linspace(0, 1, NV, endpoint=False)
    prev = registration.sample_pullback_grid(cut0.faces, uv0, cut0.vertices, uspace, vspace)

    phi0s = registration.phi_offsets_from_prev_mesh(cut1.faces, uv1, cut1.vertices, uspace, vspace, prev)

    npt.assert_allclose(phi0s, -0.1, atol=1e-3)
    grid = registration.sample_pullback_grid(cut1.faces, uv1, cut1.vertices, uspace, vspace, phi0s)
    npt.assert_allclose(grid, prev, atol=1e-2)


def test_phi_offsets_vspace_grid_and_threads(pullback_pair):
    (cut0, uv0), (cut1, uv1) = pullback_pair
    uspace = np.linspace(0, 1, NU)
    vspace = np.repeat(np.linspace(0, 1, NV, endpoint=False)[None,:], NU, axis=0)
    prev = registration.sample_pullback_grid(cut0.faces, uv0, cut0.vertices, uspace, vspace)

    phi0s = registration.phi_offsets_from_prev_mesh(cut1.faces, uv1, cut1.vertices, uspace, vspace, prev, n_jobs=2)
    npt.assert_allclose(phi0s, -0.1, atol=1e-3)


def test_nan_ring_gives_nan_offset(pullback_pair):
    (cut0, uv0), (cut1, uv1) = pullback_pair
    uspace = np.linspace(0, 1, NU)
    vspace = np.linspace(0, 1, NV, endpoint=False)
    prev = registration.sample_pullback_grid(cut0.faces, uv0, cut0.vertices, uspace, vspace)
    prev[2] = np.nan

    with pytest.warns(exceptions.OptimizationFailure):
        phi0s = registration.phi_offsets_from_prev_mesh(cut1.faces, uv1, cut1.vertices, uspace, vspace, prev)

    assert np.isnan(phi0s[2])
    npt.assert_allclose(np.delete(phi0s, 2), -0.1, atol=1e-3)

    filled = registration.fill_nan_phi0s(phi0s, uspace)
    npt.assert_allclose(filled, -0.1, atol=1e-3)


def test_phi_offsets_bad_reference_shape(pullback_pair):
    cut1, uv1 = pullback_pair[1]
    with pytest.raises(ValueError):
        registration.phi_offsets_from_prev_mesh(cut1.faces, uv1, cut1.vertices, np.linspace(0, 1, NU),
                                                np.linspace(0, 1, NV, endpoint=False), np.zeros((NU-1, NV, 3)))


def test_iterative_phi_offsets(pullback_pair):
    (cut0, uv0), (cut1, uv1) = pullback_pair
    uspace = np.linspace(0, 1, NU)
    vspace = np.linspace(0, 1, NV, endpoint=False)
    prev = registration.sample_pullback_grid(cut0.faces, uv0, cut0.vertices, uspace, vspace)

    phi0s, n_iter = registration.iterative_phi_offsets(cut1.faces, uv1, cut1.vertices, uspace, vspace, prev,
                                                       max_iter=5, tol=1e-3, smooth_window=3, smooth_polyorder=1)
    assert 1 <= n_iter <= 5
    npt.assert_allclose(np.mod(phi0s + 0.5, 1) - 0.5, -0.1, atol=2e-3)


def test_fill_nan_phi0s():
    npt.assert_allclose(registration.fill_nan_phi0s([np.nan, 0.1, np.nan, 0.3, np.nan]), [0.1, 0.1, 0.2, 0.3, 0.3])
    npt.assert_allclose(registration.fill_nan_phi0s([np.nan, np.nan]), [0., 0.])


def test_fill_nan_phi0s_across_the_wrap():
    filled = registration.fill_nan_phi0s([0.48, np.nan, -0.48])
    npt.assert_allclose(np.abs(filled[1]), 0.5, atol=1e-12)
    npt.assert_allclose(filled[[0, 2]], [0.48, -0.48])

    filled = registration.fill_nan_phi0s([0.4, np.nan, np.nan, np.nan, -0.4], uspace=np.linspace(0, 1, 5))
    npt.assert_allclose(np.mod(filled - [0.4, 0.45, 0.5, 0.55, 0.6] + 0.5, 1.) - 0.5, 0., atol=1e-12)
    assert np.all((filled >= -0.5) & (filled < 0.5))


def test_smooth_phi0s_unwraps():
    phi0s = np.array([0.45, 0.48, -0.49, -0.47, -0.45])
    smooth = registration.smooth_phi0s(phi0s, window=3, polyorder=1)
    assert np.all(np.diff(smooth) > 0)
    npt.assert_allclose(np.mod(smooth - phi0s + 0.5, 1.) - 0.5, 0, atol=0.02)


def test_ring_registration_cost():
    a = np.array([[0., 0., 0.], [1., 0., 0.], [np.nan, 0., 0.]])
    b = np.zeros((3, 3))
    assert registration.ring_registration_cost(a, b) == pytest.approx(0.5)
    assert registration.ring_registration_cost(np.full((2, 3), np.nan), np.zeros((2, 3))) == np.inf
