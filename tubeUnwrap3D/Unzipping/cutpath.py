"""
Edge paths on a tube mesh along which the tube is cut open.

The mesh is treated as an undirected graph whose nodes are the vertices and whose edges are the mesh edges weighted by their Euclidean length. A cut path joins a vertex of one boundary (tube end) to a vertex of the other.
"""
import logging

import numpy as np

from ..Mesh import meshtools
from ..Geometry import geometry
from ..Utility_Functions import exceptions


logger = logging.getLogger(__name__)


def mesh_edge_graph(faces, vertices):
    r""" Weighted vertex adjacency graph of a triangle mesh

    Parameters
    ----------
    faces : (n_faces,3) array
        0-indexed triangles
    vertices : (n_vertices,3) array
        vertex coordinates

    Returns
    -------
    C : (n_vertices,n_vertices) sparse array
        symmetric matrix whose nonzero entries are the lengths of the mesh edges
    edges : (n_edges,2) array
        the unique mesh edges

    """
    edges = meshtools.mesh_edges(faces)
    C = meshtools.adjacency_edge_cost_matrix(np.array(vertices, dtype=np.float64), edges, n=len(vertices))

    return C, edges


def _predecessors_to_path(predecessors, source, target):
    path = [int(target)]
    cur = int(target)
    while cur != source:
        cur = int(predecessors[cur])
        if cur < 0:
            return None
        path.append(cur)
    return np.array(path[::-1], dtype=np.int64)


def shortest_path(C, source, target):
    r""" Dijkstra shortest path between two vertices of a weighted graph

    Parameters
    ----------
    C : (n,n) sparse array
        symmetric matrix of edge weights, see :func:`mesh_edge_graph`
    source : int
        start vertex
    target : int
        end vertex

    Returns
    -------
    path : (n_path,) int array
        vertex indices from ``source`` to ``target`` inclusive
    length : scalar
        the total weight of the path

    """
    from scipy.sparse.csgraph import dijkstra

    dist, predecessors = dijkstra(C, directed=False, indices=int(source), return_predecessors=True)
    path = _predecessors_to_path(predecessors, int(source), int(target))
    if path is None or not np.isfinite(dist[int(target)]):
        raise exceptions.BoundaryConstraintError('no path along mesh edges joins vertex %d to vertex %d' %(source, target),
                                                 endpoints=[source, target])

    return path, dist[int(target)]


def _check_reference_path(ref_path):
    if ref_path is None:
        raise exceptions.InvalidReferencePath("a reference path must be supplied when method='nearest'")
    ref_path = np.array(ref_path, dtype=np.float64)
    if ref_path.ndim != 2:
        raise exceptions.InvalidReferencePath('reference path must be an (n_points, d) array of coordinates, got shape ' + str(ref_path.shape))
    if len(ref_path) < 3:
        raise exceptions.InvalidReferencePath('reference path must have at least 3 points, got %d' %(len(ref_path)))
    return ref_path


def path_distance(path_pts, ref_pts, metric='chamfer'):
    r""" Distance between a candidate path and a reference path, both given as point sequences

    Parameters
    ----------
    path_pts : (n,3) array
        coordinates of the candidate path
    ref_pts : (m,3) array
        coordinates of the reference path
    metric : str or callable
        'chamfer' (:func:`tubeUnwrap3D.Mesh.meshtools.chamfer_distance_point_cloud`), 'hausdorff' (:func:`tubeUnwrap3D.Mesh.meshtools.hausdorff_distance_point_cloud`) or a function f(path_pts, ref_pts) returning a scalar

    Returns
    -------
    dist : scalar
        the distance
    """
    if callable(metric):
        return float(metric(path_pts, ref_pts))
    if metric == 'chamfer':
        return meshtools.chamfer_distance_point_cloud(path_pts, ref_pts)
    if metric == 'hausdorff':
        return meshtools.hausdorff_distance_point_cloud(path_pts, ref_pts)
    raise ValueError("metric must be 'chamfer', 'hausdorff' or a callable, got " + str(metric))


def nearest_path(faces, vertices, source, target, ref_path,
                 penalties=(0., 1., 4., 16., 64., 256.),
                 metric='chamfer',
                 n_ref_samples=500):
    r""" Find the mesh edge path between two vertices that best matches a reference path e.g. the validated cut path of the previous timepoint.

    Candidate paths are Dijkstra shortest paths under edge weights that penalize distance from the reference,

    .. math::
        w_e = \ell_e \left(1 + \lambda \frac{d_e}{\bar{\ell}}\right)

    where :math:`\ell_e` is the edge length, :math:`d_e` the distance of the edge midpoint to the reference path, :math:`\bar{\ell}` the mean edge length and :math:`\lambda` runs over ``penalties``. The candidate with the smallest ``metric`` distance to the reference wins, ties going to the earlier candidate.

    Parameters
    ----------
    faces : (n_faces,3) array
        0-indexed triangles
    vertices : (n_vertices,3) array
        vertex coordinates
    source : int
        start vertex
    target : int
        end vertex
    ref_path : (n_points,3) array
        coordinates of the reference path, at least 3 points
    penalties : sequence of scalar
        the attraction weights :math:`\lambda` generating the candidates. Including 0 makes the plain shortest path a candidate
    metric : str or callable
        see :func:`path_distance`
    n_ref_samples : int
        the reference is resampled to this many points equally spaced in arclength

    Returns
    -------
    path : (n_path,) int array
        vertex indices from ``source`` to ``target`` inclusive
    score : scalar
        the distance of the returned path to the reference

    """
    from scipy.spatial import cKDTree
    import scipy.sparse as spsparse

    ref_path = _check_reference_path(ref_path)
    vertices = np.array(vertices, dtype=np.float64)

    ref_dense = geometry.resample_curve(ref_path, n_samples=max(int(n_ref_samples), len(ref_path)))

    edges = meshtools.mesh_edges(faces)
    edge_len = np.linalg.norm(vertices[edges[:,0]] - vertices[edges[:,1]], axis=-1)
    mean_len = np.mean(edge_len) if len(edge_len) > 0 else 1.
    if mean_len <= 0:
        mean_len = 1.
    midpoints = .5*(vertices[edges[:,0]] + vertices[edges[:,1]])
    edge_ref_dist, _ = cKDTree(ref_dense).query(midpoints)

    best_path = None
    best_score = np.inf
    seen = []
    for lam in penalties:
        weights = edge_len * (1. + float(lam) * edge_ref_dist / mean_len)
        C = spsparse.csr_matrix((weights, (edges[:,0], edges[:,1])), shape=(len(vertices), len(vertices)))
        C = C + C.transpose()
        cand, _ = shortest_path(C, source, target)
        if any(len(ss) == len(cand) and np.all(ss == cand) for ss in seen):
            continue
        seen.append(cand)
        score = path_distance(vertices[cand], ref_dense, metric=metric)
        logger.debug('nearest_path: penalty %s gives %d vertices, distance %.5f', str(lam), len(cand), score)
        if score < best_score:
            best_score = score
            best_path = cand

    return best_path, best_score


def trim_boundary_path(path, bdy_inds):
    r""" Remove the vertices at the head and tail of a path that walk along the mesh boundary.

    While the first two (last two) vertices are both boundary vertices the first (last) vertex is dropped. Applying the trim to an already trimmed path returns it unchanged.

    Parameters
    ----------
    path : (n_path,) int array
        vertex indices of the path
    bdy_inds : (n_bdy,) int array
        indices of the boundary vertices of the mesh

    Returns
    -------
    path_trim : (n_trim,) int array
        the trimmed path, at least 2 vertices

    """
    path = np.array(path, dtype=np.int64).ravel()
    is_bdy = np.isin(path, bdy_inds)

    start = 0
    while start + 1 < len(path) and is_bdy[start] and is_bdy[start+1]:
        start += 1
    stop = len(path) - 1
    while stop - 1 >= start and is_bdy[stop] and is_bdy[stop-1]:
        stop -= 1

    path_trim = path[start:stop+1]
    if len(path_trim) < 2:
        raise exceptions.BoundaryConstraintError('trimming boundary edges from the cut path removed the whole path', endpoints=path[[0,-1]] if len(path)>0 else [])

    return path_trim


def check_cylinder(faces, n_vertices):
    r""" Raise :class:`tubeUnwrap3D.Utility_Functions.exceptions.NotATopologicalCylinder` unless V-E+F = 0

    Parameters
    ----------
    faces : (n_faces,3) array
        0-indexed triangles
    n_vertices : int
        number of vertices

    Returns
    -------
    n_edges : int
        the number of unique edges

    """
    chi, n_edges = meshtools.euler_characteristic(n_vertices, faces)
    if chi != 0:
        raise exceptions.NotATopologicalCylinder('input mesh is not a topological cylinder',
                                                 n_vertices=n_vertices, n_edges=n_edges, n_faces=len(faces))
    return n_edges


def find_cut_path(faces, vertices, cp1, cp2, method='fastest', ref_path=None, nearest_params=None):
    r""" Find the cut path of a topological cylinder between a vertex on one boundary and a vertex on the other, trimmed of boundary-hugging ends.

    Parameters
    ----------
    faces : (n_faces,3) array
        0-indexed triangles of a topological cylinder
    vertices : (n_vertices,3) array
        vertex coordinates
    cp1 : int
        boundary vertex where the path starts
    cp2 : int
        boundary vertex where the path terminates
    method : str
        'fastest' for the shortest edge path, 'nearest' for the path best matching ``ref_path``, see :func:`nearest_path`
    ref_path : (n_points,3) array
        reference path coordinates, required when method='nearest'
    nearest_params : dict
        keyword arguments of :func:`nearest_path`, see :func:`tubeUnwrap3D.Parameters.params.nearest_path_params`

    Returns
    -------
    path : (n_path,) int array
        vertex indices of the trimmed cut path
    cp1_out : int
        first vertex of the trimmed path
    cp2_out : int
        last vertex of the trimmed path

    """
    faces = meshtools.check_faces(faces)
    vertices = np.array(vertices, dtype=np.float64)

    check_cylinder(faces, len(vertices))

    bdy_inds = meshtools.boundary_vertex_indices(faces)
    not_bdy = [int(cp) for cp in (cp1, cp2) if not np.isin(cp, bdy_inds)]
    if len(not_bdy) > 0:
        raise exceptions.EndpointNotOnBoundary('cut path endpoints %s do not lie on the mesh boundary' %(str(not_bdy)), endpoints=not_bdy)

    if method == 'fastest':
        C, _ = mesh_edge_graph(faces, vertices)
        path, _ = shortest_path(C, cp1, cp2)
    elif method == 'nearest':
        if nearest_params is None:
            nearest_params = {}
        path, score = nearest_path(faces, vertices, cp1, cp2, ref_path, **nearest_params)
        logger.info('nearest cut path has distance %.5f to the reference path', score)
    else:
        raise ValueError("method must be one of 'fastest' or 'nearest', got " + str(method))

    path = trim_boundary_path(path, bdy_inds)

    return path, int(path[0]), int(path[-1])
