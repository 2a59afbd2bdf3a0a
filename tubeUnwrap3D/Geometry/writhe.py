"""
Polar writhe of open curves, following M. A. Berger and C. Prior, "The writhe of open and closed curves", J. Phys. A 39 (2006).

The curve is split into segments along which z is monotonic. The writhe is the sum of a local part, integrated along the curve, and a nonlocal part, given by the winding of the horizontal vector joining every pair of segments whose z ranges overlap.
"""
import logging
import warnings
from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np

from ..Utility_Functions import exceptions
from . import geometry


logger = logging.getLogger(__name__)


@dataclass
class WritheResult:
    r""" Polar writhe of a curve and its decomposition

    Attributes
    ----------
    wr : float
        total writhe, the NaN-safe sum of the local and nonlocal parts
    wr_local : (n_segments,) array
        local writhe of each segment
    local_density : (N,) array
        the local writhe integrand at every curve point (NaN where excluded)
    wr_nonlocal : (n_pairs,) array
        nonlocal contribution of every ordered pair of segments with overlapping z ranges
    turns : (n_segments-1,) int array
        index of the first point of every segment after the first
    segments : list of int arrays
        point indices of each segment, a partition of the curve
    segment_pairs : list of (i,j) tuples
        the segment pair of each entry of ``wr_nonlocal``
    sigmas : (n_segments,) int array
        +1 if z increases along the segment, -1 otherwise
    """
    wr: float
    wr_local: np.ndarray
    local_density: np.ndarray
    wr_nonlocal: np.ndarray
    turns: np.ndarray
    segments: List[np.ndarray] = field(default_factory=list)
    segment_pairs: List[Tuple[int, int]] = field(default_factory=list)
    sigmas: np.ndarray = None

    @property
    def n_segments(self):
        return len(self.segments)


def dz_ds_sign(z, ss, stationary_policy='clamp'):
    r""" Sign of dz/ds at every point of a curve, with a choice of how stationary points are classed

    Parameters
    ----------
    z : (N,) array
        height of each point
    ss : (N,) array
        arclength of each point
    stationary_policy : str
        'clamp' : descending and stationary points form one class (sign 0), ascending points the other.
        'strict' : ascending (+1), stationary (0) and descending (-1) points are three classes.
        'fill' : stationary points take the sign of the previous non-stationary point (the next one for leading stationary points).

    Returns
    -------
    sgn : (N,) array
        the classified sign
    """
    z = np.asarray(z, dtype=np.float64)
    ss = np.asarray(ss, dtype=np.float64)
    with np.errstate(divide='ignore', invalid='ignore'):
        sgn = np.sign(np.gradient(z) / np.gradient(ss))
    sgn[~np.isfinite(sgn)] = 0

    if stationary_policy == 'clamp':
        sgn[sgn < 0] = 0
    elif stationary_policy == 'strict':
        pass
    elif stationary_policy == 'fill':
        nonzero = np.flatnonzero(sgn != 0)
        if len(nonzero) > 0:
            # index of the last nonzero sign at or before each point
            last = np.maximum.accumulate(np.where(sgn != 0, np.arange(len(sgn)), -1))
            last[last < 0] = nonzero[0]
            sgn = sgn[last]
    else:
        raise ValueError("stationary_policy must be one of 'clamp', 'strict' or 'fill', got " + str(stationary_policy))

    return sgn


def segment_curve(sgn):
    r""" Split a curve into segments at the changes of its dz/ds sign

    Parameters
    ----------
    sgn : (N,) array
        sign class of every point, see :func:`dz_ds_sign`

    Returns
    -------
    turns : (n_segments-1,) int array
        index of the first point of every segment after the first
    segments : list of int arrays
        segments [0, t0-1], [t0, t1-1], ..., [tk, N-1]
    """
    sgn = np.asarray(sgn)
    turns = np.flatnonzero(np.abs(np.diff(sgn)) > 0) + 1
    bounds = np.hstack([0, turns, len(sgn)]).astype(np.int64)
    segments = [np.arange(bounds[ii], bounds[ii+1]) for ii in range(len(bounds)-1)]

    return turns, segments


def segment_sigma(z_seg):
    r""" +1 if the lowest point of a segment comes before its highest, -1 otherwise """
    return 1 if np.argmin(z_seg) < np.argmax(z_seg) else -1


def local_writhe_density(xyz, ss, stationary_tol=1e-8):
    r""" Local polar writhe integrand at each point of a curve,

    .. math::
        \frac{1}{2\pi} \frac{(\mathbf{T} \times \mathbf{T}')_z}{1 + |T_z|} \Delta s

    with :math:`\mathbf{T}` the unit tangent. Points with a horizontal tangent, :math:`|T_z| \le` ``stationary_tol``, carry no polar angle and are set to NaN.

    Parameters
    ----------
    xyz : (N,3) array
        ordered curve points
    ss : (N,) array
        arclength of each point
    stationary_tol : scalar
        threshold on :math:`|T_z|` below which points are excluded

    Returns
    -------
    density : (N,) array
        the integrand times the local arclength step
    """
    xyz = np.asarray(xyz, dtype=np.float64)
    ss = np.asarray(ss, dtype=np.float64)

    with np.errstate(divide='ignore', invalid='ignore'):
        tangent = np.gradient(xyz, ss, axis=0)
        tangent = tangent / np.linalg.norm(tangent, axis=-1)[:,None]
        dtangent = np.gradient(tangent, ss, axis=0)
        cross_z = tangent[:,0]*dtangent[:,1] - tangent[:,1]*dtangent[:,0]
        density = cross_z / (1. + np.abs(tangent[:,2])) * np.gradient(ss) / (2*np.pi)

    density[~(np.abs(tangent[:,2]) > stationary_tol)] = np.nan

    return density


def _nonlocal_pair(xyz_i, xyz_j, n_samples):
    zmin = max(np.min(xyz_i[:,2]), np.min(xyz_j[:,2]))
    zmax = min(np.max(xyz_i[:,2]), np.max(xyz_j[:,2]))
    if not zmax > zmin:
        return np.nan

    zz = np.linspace(zmin, zmax, int(n_samples)+1)
    dzz = zz[1] - zz[0]

    def _interp(seg):
        order = np.argsort(seg[:,2], kind='stable')
        return np.interp(zz, seg[order,2], seg[order,0]), np.interp(zz, seg[order,2], seg[order,1])

    xi, yi = _interp(xyz_i)
    xj, yj = _interp(xyz_j)

    rx = xj - xi
    ry = yj - yi
    with np.errstate(divide='ignore', invalid='ignore'):
        drx = np.gradient(rx, dzz)
        dry = np.gradient(ry, dzz)
        dtheta_dz = (rx*dry - ry*drx) / (rx**2 + ry**2)

    if not np.any(np.isfinite(dtheta_dz)):
        # coincident segments, r = 0 everywhere
        return np.nan
    return np.nansum(dtheta_dz * dzz)


def polar_writhe(xyz, ss=None, stationary_policy='clamp', n_samples=100, stationary_tol=1e-8):
    r""" Compute the polar writhe of a 3D curve together with its local and nonlocal components.

    Parameters
    ----------
    xyz : (N,3) array
        ordered curve points
    ss : (N,) array
        arclength parametrization. If None, the cumulative Euclidean length of the polyline is used
    stationary_policy : str
        how points with dz/ds = 0 split the curve into segments, see :func:`dz_ds_sign`
    n_samples : int
        number of intervals sampling the shared z range of two segments
    stationary_tol : scalar
        see :func:`local_writhe_density`

    Returns
    -------
    result : :class:`WritheResult`
        the writhe and its decomposition

    """
    xyz = np.array(xyz, dtype=np.float64)
    if xyz.ndim != 2 or xyz.shape[1] != 3:
        raise ValueError('curve must be an (N,3) array, got shape ' + str(xyz.shape))
    if len(xyz) < 3:
        raise ValueError('curve needs at least 3 points to compute its writhe')
    if ss is None:
        ss = geometry.curve_arclength(xyz)
    ss = np.array(ss, dtype=np.float64)

    sgn = dz_ds_sign(xyz[:,2], ss, stationary_policy=stationary_policy)
    turns, segments = segment_curve(sgn)
    sigmas = np.array([segment_sigma(xyz[seg,2]) for seg in segments], dtype=np.int64)

    density = local_writhe_density(xyz, ss, stationary_tol=stationary_tol)
    wr_local = np.array([np.nansum(density[seg]) for seg in segments])

    wr_nonlocal = []
    segment_pairs = []
    if len(segments) == 1:
        logger.debug('one single segment detected')
    else:
        logger.debug('%d segments detected', len(segments))
        zr = [(np.min(xyz[seg,2]), np.max(xyz[seg,2])) for seg in segments]
        for ii in range(len(segments)):
            for jj in range(len(segments)):
                if ii == jj:
                    continue
                (zmin_i, zmax_i), (zmin_j, zmax_j) = zr[ii], zr[jj]
                overlap = (zmin_j <= zmin_i <= zmax_j) or (zmin_j <= zmax_i <= zmax_j) or \
                          (zmin_i <= zmin_j <= zmax_i) or (zmin_i <= zmax_j <= zmax_i)
                if not overlap:
                    logger.debug('no overlap between segments %d and %d', ii, jj)
                    continue
                contrib = _nonlocal_pair(xyz[segments[ii]], xyz[segments[jj]], n_samples)
                if not np.isfinite(contrib):
                    msg = 'segments %d and %d share a degenerate z range, pair excluded from the writhe' %(ii, jj)
                    logger.warning(msg)
                    warnings.warn(msg, exceptions.NumericDegeneracy)
                    continue
                wr_nonlocal.append(sigmas[ii] * sigmas[jj] * contrib / (2*np.pi))
                segment_pairs.append((ii, jj))

    wr_nonlocal = np.array(wr_nonlocal, dtype=np.float64)
    wr = np.nansum(wr_local) + np.nansum(wr_nonlocal)

    return WritheResult(wr=float(wr),
                        wr_local=wr_local,
                        local_density=density,
                        wr_nonlocal=wr_nonlocal,
                        turns=turns,
                        segments=segments,
                        segment_pairs=segment_pairs,
                        sigmas=sigmas)
