"""

This module registers the azimuthal coordinate v of a tube pullback to a reference embedding, typically that of the previous timepoint, by finding for every ring u=const the rotation offset phi0 that best superimposes the ring on the reference.

"""
import logging
import warnings

import numpy as np

from ..Mesh import meshtools
from ..Utility_Functions import exceptions


logger = logging.getLogger(__name__)


def _ring_v(vspace, ii):
    if vspace.ndim == 1:
        return vspace
    return vspace[ii]


def _check_vspace(vspace, nU):
    vspace = np.array(vspace, dtype=np.float64)
    if vspace.ndim == 2 and 1 in vspace.shape and vspace.shape[0] != nU:
        vspace = vspace.ravel()
    if vspace.ndim == 2 and vspace.shape[0] != nU:
        raise ValueError('vspace given as a grid must have one row per ring, got shape %s for %d rings' %(str(vspace.shape), nU))
    if vspace.ndim not in (1,2):
        raise ValueError('vspace must be a 1D array or an (nU,nV) grid')
    return vspace


def register_ring_points(faces, uv, xyz, u, v, phi0, mesh2d=None):
    r""" 3D positions of the points of a ring u=const at azimuthal coordinates v shifted by phi0, wrapped periodically into [0,1)

    Parameters
    ----------
    faces : (n_faces,3) array
        triangles of the cut mesh
    uv : (n_vertices,2) array
        pullback coordinates of the cut mesh vertices
    xyz : (n_vertices,3) array
        3D positions of the cut mesh vertices
    u : scalar
        the ring coordinate
    v : (nV,) array
        azimuthal coordinates of the ring points
    phi0 : scalar
        the azimuthal offset
    mesh2d : trimesh.Trimesh
        optional prebuilt flat mesh of the pullback, see :func:`tubeUnwrap3D.Mesh.meshtools.planar_mesh`

    Returns
    -------
    pts : (nV,3) array
        3D positions, NaN where the query falls outside the pullback
    """
    v = np.asarray(v, dtype=np.float64).ravel()
    query = np.vstack([np.full(len(v), float(u)), np.mod(v + phi0, 1.)]).T

    return meshtools.interpolate_2d_pts_3d_mesh(faces, uv, xyz, query, mesh2d=mesh2d)


def ring_registration_cost(pts, ref_pts):
    r""" Mean squared 3D distance between a ring and its reference over the point pairs where both are finite. Infinite if there is none. """
    sqdist = np.sum((pts - ref_pts)**2, axis=-1)
    valid = np.isfinite(sqdist)
    if not np.any(valid):
        return np.inf
    return np.mean(sqdist[valid])


def _register_ring(faces, uv, xyz, u, v, ref_pts, lowerbound, upperbound, xtol, maxfun, mesh2d, ring_id):
    from scipy.optimize import fminbound

    if not np.any(np.all(np.isfinite(ref_pts), axis=-1)):
        msg = 'ring %d has no finite reference points, phi0 set to NaN' %(ring_id)
        logger.warning(msg)
        warnings.warn(msg, exceptions.OptimizationFailure)
        return np.nan

    def opt_score(phi0):
        pts = register_ring_points(faces, uv, xyz, u, v, phi0, mesh2d=mesh2d)
        return ring_registration_cost(pts, ref_pts)

    phi0, fval, ierr, numfunc = fminbound(opt_score, lowerbound, upperbound, xtol=xtol, maxfun=maxfun, full_output=True)

    if not np.isfinite(fval):
        msg = 'ring %d could not be sampled inside the pullback, phi0 set to NaN' %(ring_id)
        logger.warning(msg)
        warnings.warn(msg, exceptions.OptimizationFailure)
        return np.nan
    if ierr != 0:
        msg = 'ring %d: bounded search reached maxfun=%d before converging, keeping phi0=%.5f' %(ring_id, maxfun, phi0)
        logger.warning(msg)
        warnings.warn(msg, exceptions.OptimizationFailure)

    return float(phi0)


def phi_offsets_from_prev_mesh(faces, uv, xyz, uspace, vspace, prev3d_sphi,
                               lowerbound=-0.5,
                               upperbound=0.5,
                               xtol=1e-5,
                               maxfun=500,
                               n_jobs=1,
                               show_progress=False):
    r""" Find for every ring u=const of a pullback the offset phi0 in the azimuthal coordinate v that minimizes the distance in 3D between the ring and the same ring of a reference embedding, such as the previous timepoint.

    For each ring the cost

    .. math::
        E(\phi_0) = \frac{1}{|S|} \sum_{j \in S} \left\| X(u_i, (v_j + \phi_0) \bmod 1) - X_{prev}(u_i, v_j) \right\|^2

    is minimized over :math:`\phi_0 \in` [lowerbound, upperbound] by bounded Brent search, with :math:`X` the barycentric interpolation of the cut mesh embedding over its pullback and :math:`S` the samples where both embeddings are finite. Rings are independent of each other.

    Parameters
    ----------
    faces : (n_faces,3) array
        triangles of the cut mesh
    uv : (n_vertices,2) array
        pullback coordinates of the cut mesh vertices
    xyz : (n_vertices,3) array
        3D positions of the cut mesh vertices
    uspace : (nU,) array
        u coordinate of each ring
    vspace : (nV,) array or (nU,nV) array
        azimuthal coordinates of the samples, shared by all rings or given per ring
    prev3d_sphi : (nU,nV,3) array
        reference 3D positions at (uspace, vspace)
    lowerbound : scalar
        lower bound of the phi0 search
    upperbound : scalar
        upper bound of the phi0 search
    xtol : scalar
        absolute tolerance of the search
    maxfun : int
        maximum number of cost evaluations per ring
    n_jobs : int
        number of rings registered concurrently (threads)
    show_progress : bool
        if True, show a progress bar over the rings

    Returns
    -------
    phi0s : (nU,) array
        the offset of each ring, NaN for rings that could not be registered

    """
    from tqdm import tqdm

    uspace = np.array(uspace, dtype=np.float64).ravel()
    nU = len(uspace)
    vspace = _check_vspace(vspace, nU)
    prev3d_sphi = np.array(prev3d_sphi, dtype=np.float64)
    if prev3d_sphi.ndim != 3 or prev3d_sphi.shape[0] != nU:
        raise ValueError('prev3d_sphi must be an (nU,nV,3) array with nU=%d, got shape %s' %(nU, str(prev3d_sphi.shape)))
    if not lowerbound < upperbound:
        raise ValueError('lowerbound must be smaller than upperbound')

    faces = meshtools.check_faces(faces)
    threaded = n_jobs is not None and n_jobs != 1
    # threaded rings each build their own flat mesh and spatial index
    mesh2d = None if threaded else meshtools.planar_mesh(faces, uv)

    def _run(ii):
        ring_mesh2d = meshtools.planar_mesh(faces, uv) if mesh2d is None else mesh2d
        return _register_ring(faces, uv, xyz, uspace[ii], _ring_v(vspace, ii), prev3d_sphi[ii],
                              lowerbound, upperbound, xtol, maxfun, ring_mesh2d, ii)

    ring_ids = range(nU)
    if show_progress:
        ring_ids = tqdm(ring_ids, desc='phi0 registration')

    phi0s = np.full(nU, np.nan)
    if threaded:
        from joblib import Parallel, delayed

        # each ring writes only its own slot
        results = Parallel(n_jobs=n_jobs, prefer='threads')(delayed(_run)(ii) for ii in ring_ids)
        phi0s[:] = results
    else:
        for ii in ring_ids:
            phi0s[ii] = _run(ii)

    logger.info('registered %d/%d rings, median |phi0| = %.5f', np.sum(np.isfinite(phi0s)), nU,
                np.nanmedian(np.abs(phi0s)) if np.any(np.isfinite(phi0s)) else np.nan)

    return phi0s


def fill_nan_phi0s(phi0s, uspace=None):
    r""" Fill NaN offsets by linear interpolation over u between the neighbouring registered rings, holding the end values constant. Offsets are periodic with period 1: the registered offsets are unwrapped before interpolating so that a gap between offsets near 0.5 and -0.5 is filled near 0.5 and not near 0. Filled values are wrapped into [-0.5,0.5). If no ring is registered, zeros are returned.

    Parameters
    ----------
    phi0s : (nU,) array
        ring offsets
    uspace : (nU,) array
        u coordinate of each ring. If None, rings are equally spaced

    Returns
    -------
    phi0s_fill : (nU,) array
        the offsets without NaN
    """
    phi0s = np.array(phi0s, dtype=np.float64)
    if uspace is None:
        uspace = np.arange(len(phi0s))
    uspace = np.asarray(uspace, dtype=np.float64)

    valid = np.isfinite(phi0s)
    if not np.any(valid):
        return np.zeros_like(phi0s)
    if np.all(valid):
        return phi0s

    phi0s_valid = np.unwrap(phi0s[valid], period=1.)
    phi0s_fill = phi0s.copy()
    phi0s_fill[~valid] = np.mod(np.interp(uspace[~valid], uspace[valid], phi0s_valid) + 0.5, 1.) - 0.5
    return phi0s_fill


def smooth_phi0s(phi0s, window=5, polyorder=2):
    r""" Savitzky-Golay smoothing of the offsets across rings. Offsets are first unwrapped with period 1 so that a jump between -0.5 and 0.5 is not smoothed over. NaN offsets are filled first, see :func:`fill_nan_phi0s`.

    Parameters
    ----------
    phi0s : (nU,) array
        ring offsets
    window : int
        odd window length in rings, reduced for short arrays. If None the offsets are only unwrapped
    polyorder : int
        polynomial order of the local fits

    Returns
    -------
    phi0s_smooth : (nU,) array
        the smoothed offsets
    """
    from scipy.signal import savgol_filter

    phi0s = np.unwrap(fill_nan_phi0s(phi0s), period=1.)
    if window is None:
        return phi0s

    window = int(min(window, len(phi0s)))
    if window % 2 == 0:
        window = window - 1
    if window <= polyorder:
        return phi0s

    return savgol_filter(phi0s, window_length=window, polyorder=polyorder, mode='interp')


def iterative_phi_offsets(faces, uv, xyz, uspace, vspace, prev3d_sphi,
                          max_iter=10,
                          tol=1e-4,
                          smooth_window=5,
                          smooth_polyorder=2,
                          **registration_kwargs):
    r""" Refine the ring offsets iteratively. Each iteration registers the rings at their current offsets, adds the update and smooths the accumulated offsets across rings, stopping once the largest update falls below ``tol``.

    Parameters
    ----------
    faces : (n_faces,3) array
        triangles of the cut mesh
    uv : (n_vertices,2) array
        pullback coordinates of the cut mesh vertices
    xyz : (n_vertices,3) array
        3D positions of the cut mesh vertices
    uspace : (nU,) array
        u coordinate of each ring
    vspace : (nV,) array or (nU,nV) array
        azimuthal coordinates of the samples
    prev3d_sphi : (nU,nV,3) array
        reference 3D positions at (uspace, vspace)
    max_iter : int
        maximum number of registration rounds
    tol : scalar
        stopping threshold on the largest absolute offset update
    smooth_window : int
        see :func:`smooth_phi0s`. None disables smoothing
    smooth_polyorder : int
        see :func:`smooth_phi0s`
    registration_kwargs :
        keyword arguments of :func:`phi_offsets_from_prev_mesh`

    Returns
    -------
    phi0s : (nU,) array
        the accumulated offsets
    n_iter : int
        the number of rounds run

    """
    uspace = np.array(uspace, dtype=np.float64).ravel()
    nU = len(uspace)
    vspace = _check_vspace(vspace, nU)
    if vspace.ndim == 1:
        vspace = np.repeat(vspace[None,:], nU, axis=0)

    phi0s = np.zeros(nU)
    n_iter = 0
    for it in range(max_iter):
        n_iter = it + 1
        dphi0s = phi_offsets_from_prev_mesh(faces, uv, xyz, uspace, vspace + phi0s[:,None], prev3d_sphi, **registration_kwargs)
        dphi0s = fill_nan_phi0s(dphi0s, uspace)
        phi0s = smooth_phi0s(phi0s + dphi0s, window=smooth_window, polyorder=smooth_polyorder)

        max_update = np.max(np.abs(dphi0s)) if nU > 0 else 0.
        logger.debug('phi0 iteration %d: largest update %.6f', n_iter, max_update)
        if max_update < tol:
            break

    return phi0s, n_iter


def sample_pullback_grid(faces, uv, xyz, uspace, vspace, phi0s=None):
    r""" Sample the embedding of a pullback on a regular grid, each ring rotated by its offset: grid[i,j] = X(u_i, (v_j + phi0_i) mod 1). The result is the reference ``prev3d_sphi`` for registering the next timepoint.

    Parameters
    ----------
    faces : (n_faces,3) array
        triangles of the cut mesh
    uv : (n_vertices,2) array
        pullback coordinates of the cut mesh vertices
    xyz : (n_vertices,d) array
        vertex values to sample, typically 3D positions
    uspace : (nU,) array
        u coordinate of each ring
    vspace : (nV,) array or (nU,nV) array
        azimuthal coordinates of the samples
    phi0s : (nU,) array
        ring offsets. If None no offset is applied. NaN offsets are treated as 0

    Returns
    -------
    grid : (nU,nV,d) array
        the sampled values, NaN outside the pullback

    """
    uspace = np.array(uspace, dtype=np.float64).ravel()
    nU = len(uspace)
    vspace = _check_vspace(vspace, nU)
    if vspace.ndim == 1:
        vspace = np.repeat(vspace[None,:], nU, axis=0)
    nV = vspace.shape[1]

    if phi0s is None:
        phi0s = np.zeros(nU)
    phi0s = np.nan_to_num(np.array(phi0s, dtype=np.float64).ravel(), nan=0.)

    query = np.vstack([np.repeat(uspace, nV), np.mod(vspace + phi0s[:,None], 1.).ravel()]).T
    vals = meshtools.interpolate_2d_pts_3d_mesh(faces, uv, xyz, query)

    return vals.reshape(nU, nV, -1)
