import numpy as np


def curve_arclength(pts):
    r""" Cumulative arclength along an ordered point sequence, starting at 0

    Parameters
    ----------
    pts : (N,d) array
        ordered points of the curve

    Returns
    -------
    ss : (N,) array
        arclength of each point measured from the first
    """
    pts = np.array(pts, dtype=np.float64)
    seg = np.linalg.norm(np.diff(pts, axis=0), axis=-1)
    return np.hstack([0, np.cumsum(seg)])


def resample_curve(pts, n_samples=100):
    r""" Resample a polyline at points equally spaced in arclength by linear interpolation. The first and last points are kept.

    Parameters
    ----------
    pts : (N,d) array
        ordered points of the curve
    n_samples : int
        number of output points, at least 2

    Returns
    -------
    pts_out : (n_samples,d) array
        the resampled curve

    """
    pts = np.array(pts, dtype=np.float64)
    if pts.ndim != 2 or len(pts) < 2:
        raise ValueError('curve must be an (N,d) array with N >= 2, got shape ' + str(pts.shape))
    n_samples = int(n_samples)
    if n_samples < 2:
        raise ValueError('n_samples must be at least 2')

    ss = curve_arclength(pts)
    # drop repeated points which would make the arclength non-increasing
    keep = np.hstack([True, np.diff(ss) > 0])
    pts = pts[keep]
    ss = ss[keep]
    if len(pts) == 1:
        return np.repeat(pts, n_samples, axis=0)

    ss_new = np.linspace(0, ss[-1], n_samples)
    pts_out = np.vstack([np.interp(ss_new, ss, pts[:,dd]) for dd in range(pts.shape[1])]).T

    return pts_out


def smooth_curve_savgol(pts, framelen=17, polyorder=2):
    r""" Savitzky-Golay smoothing of each coordinate of an ordered curve, e.g. a centerline before computing its writhe

    Parameters
    ----------
    pts : (N,d) array
        ordered points of the curve
    framelen : int
        window length. It is reduced to the largest odd number not exceeding N when the curve is short. If None, the curve is returned unchanged
    polyorder : int
        order of the local polynomial fits

    Returns
    -------
    pts_smooth : (N,d) array
        the smoothed curve
    """
    from scipy.signal import savgol_filter

    pts = np.array(pts, dtype=np.float64)
    if framelen is None:
        return pts.copy()

    framelen = int(min(framelen, len(pts)))
    if framelen % 2 == 0:
        framelen = framelen - 1
    if framelen <= polyorder:
        return pts.copy()

    return savgol_filter(pts, window_length=framelen, polyorder=polyorder, axis=0, mode='interp')


def centerline_segment_from_cut_mesh(cline, faces, uv, xyz, eps=1e-12):
    r""" Restrict a centerline to the stretch spanned by a pulled back tube.

    The start of the segment is the centerline point with the smallest mean distance to the 3D positions of the boundary vertices with u=0, the end is the point closest in the same sense to the boundary vertices with u at its maximum.

    Parameters
    ----------
    cline : (N,3) array
        ordered centerline points
    faces : (n_faces,3) array
        triangles of the cut mesh
    uv : (n_vertices,2) array
        pullback coordinates of the cut mesh, see :func:`tubeUnwrap3D.Unzipping.unzip.rectangular_pullback_cut_mesh`
    xyz : (n_vertices,3) array
        3D vertex positions of the cut mesh
    eps : scalar
        tolerance on u for a boundary vertex to belong to an end

    Returns
    -------
    cseg : (M,3) array
        the centerline segment cline[start:end+1]
    start_id : int
        index of the first point of the segment in ``cline``
    end_id : int
        index of the last point of the segment in ``cline``
    bd_start : (n,) int array
        the boundary vertices at u=0
    bd_end : (m,) int array
        the boundary vertices at the maximal u

    """
    from ..Mesh import meshtools
    from scipy.spatial.distance import cdist

    cline = np.array(cline, dtype=np.float64)
    uv = np.array(uv, dtype=np.float64)
    xyz = np.array(xyz, dtype=np.float64)

    bdy = meshtools.boundary_vertex_indices(faces)
    bd_start = bdy[uv[bdy,0] < eps]
    bd_start = bd_start[(uv[bd_start,1] < 1+eps) & (uv[bd_start,1] > -eps)]
    umax = np.nanmax(uv[:,0])
    bd_end = bdy[uv[bdy,0] > umax - eps]

    if len(bd_start) == 0 or len(bd_end) == 0:
        raise ValueError('pullback has no boundary vertices at one of its ends')

    start_dist = cdist(cline, xyz[bd_start]).mean(axis=1)
    end_dist = cdist(cline, xyz[bd_end]).mean(axis=1)
    start_id = int(np.argmin(start_dist))
    end_id = int(np.argmin(end_dist))

    cseg = cline[start_id:end_id+1]

    return cseg, start_id, end_id, bd_start, bd_end
