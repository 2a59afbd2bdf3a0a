import numpy as np


def create_mesh(vertices,faces,vertex_normals=None):
    r""" Wrapper around trimesh.Trimesh to create a mesh given the vertices, faces and optionally vertex normals, without any processing so vertex and face indices are kept exactly.

    Parameters
    ----------
    vertices : (n_vertices,3) array
        the vertices of the mesh geometry
    faces : (n_faces,3) array
        the 0-indexed integer indices indicating how vertices are joined together to form a triangle element
    vertex_normals : (n_vertices,3) array
        if provided, the vertex normals

    Returns
    -------
    mesh : trimesh.Trimesh
        created mesh geometry

    """
    import trimesh

    mesh = trimesh.Trimesh(vertices=vertices,
                           faces=faces,
                           vertex_normals=vertex_normals,
                           process=False,
                           validate=False)

    return mesh


def check_faces(faces):
    r""" Validate a triangle face array and return it as a (n_faces,3) integer array

    Parameters
    ----------
    faces : (n_faces,3) array_like
        0-indexed triangle vertex indices

    Returns
    -------
    faces : (n_faces,3) int array
        the validated faces (a copy)

    """
    faces = np.array(faces)
    if faces.ndim != 2 or faces.shape[1] != 3:
        raise ValueError('faces must be a (n_faces, 3) array of triangles, got shape ' + str(faces.shape))
    if not np.issubdtype(faces.dtype, np.integer):
        if not np.all(np.equal(np.mod(faces, 1), 0)):
            raise ValueError('faces must contain integer vertex indices')
    faces = faces.astype(np.int64)
    if len(faces) > 0 and faces.min() < 0:
        raise ValueError('faces must be 0-indexed non-negative vertex indices')
    return faces


def mesh_edges(faces):
    r""" Unique undirected edges of a triangle mesh

    Parameters
    ----------
    faces : (n_faces,3) array
        triangles

    Returns
    -------
    edges : (n_edges,2) int array
        unique edges as sorted (min,max) vertex index pairs

    """
    import trimesh

    edges = trimesh.geometry.faces_to_edges(faces)
    edges_sorted = np.sort(edges, axis=1)
    unique, _ = trimesh.grouping.unique_rows(edges_sorted)

    return edges_sorted[unique]


def euler_characteristic(n_vertices, faces):
    r""" Euler characteristic :math:`\chi=V-E+F` of a triangle mesh.

    Parameters
    ----------
    n_vertices : int
        the number of vertices, V. All vertices are counted whether referenced by a face or not.
    faces : (n_faces,3) array
        triangles

    Returns
    -------
    chi : int
        V - E + F, 0 for a topological cylinder, 1 for a topological disk
    n_edges : int
        number of unique edges, E

    """
    n_edges = len(mesh_edges(faces))
    chi = int(n_vertices) - int(n_edges) + int(len(faces))

    return chi, n_edges


def boundary_edges(faces):
    r""" Edges attached to exactly one face

    Parameters
    ----------
    faces : (n_faces,3) array
        triangles

    Returns
    -------
    bdy_edges : (n_bdy_edges,2) int array
        the boundary edges as directed half-edges, ordered as they appear in the winding of their face

    """
    import trimesh

    edges = trimesh.geometry.faces_to_edges(faces)
    edges_sorted = np.sort(edges, axis=1)
    bdy = np.asarray(trimesh.grouping.group_rows(edges_sorted, require_count=1), dtype=np.int64).reshape(-1)

    return edges[bdy]


def boundary_vertex_indices(faces):
    r""" sorted vertex indices lying on the free boundary of a mesh

    Parameters
    ----------
    faces : (n_faces,3) array
        triangles

    Returns
    -------
    bdy_inds : (n_bdy_vertices,) int array
        unique sorted indices of vertices on a boundary edge

    """
    return np.unique(boundary_edges(faces))


def boundary_loops(faces):
    r""" Ordered boundary loops of a manifold triangle mesh, computed with ``igl.boundary_loop_all``

    Parameters
    ----------
    faces : (n_faces,3) array
        triangles

    Returns
    -------
    loops : list of (n,) int arrays
        vertex indices of each closed boundary loop in walking order, the first vertex is not repeated at the end. Each loop begins at its smallest vertex index.

    """
    import igl

    faces = check_faces(faces)
    if len(faces) == 0:
        return []

    loops = []
    for loop in igl.boundary_loop_all(np.ascontiguousarray(faces, dtype=np.int64)):
        loop = np.asarray(loop, dtype=np.int64)
        if len(loop) > 0:
            loops.append(np.roll(loop, -int(np.argmin(loop))))

    return loops


def edge_face_attachments(faces, edges):
    r""" For each queried edge, look up the faces attached to it.

    An edge interior to a manifold mesh has 2 attached faces, a boundary edge has 1 and a pair of vertices that is not an edge of the mesh has 0. Callers branch on the returned counts.

    Parameters
    ----------
    faces : (n_faces,3) array
        triangles
    edges : (n_query,2) array
        the vertex index pairs to look up, in any order

    Returns
    -------
    attachments : list of (n,) int arrays
        the face indices attached to each queried edge
    counts : (n_query,) int array
        the number of faces attached to each queried edge

    """
    import trimesh

    all_edges, face_index = trimesh.geometry.faces_to_edges(faces, return_index=True)
    all_edges_sorted = np.sort(all_edges, axis=1)
    groups = trimesh.grouping.group_rows(all_edges_sorted)

    lookup = {}
    for gg in groups:
        gg = np.atleast_1d(gg)
        key = (int(all_edges_sorted[gg[0],0]), int(all_edges_sorted[gg[0],1]))
        lookup[key] = face_index[gg]

    edges = np.sort(np.array(edges).reshape(-1,2), axis=1)
    attachments = [lookup.get((int(e0),int(e1)), np.zeros(0, dtype=np.int64)) for (e0,e1) in edges]
    counts = np.array([len(aa) for aa in attachments], dtype=np.int64)

    return attachments, counts


def face_adjacency(faces):
    r""" Pairs of faces sharing an edge

    Parameters
    ----------
    faces : (n_faces,3) array
        triangles

    Returns
    -------
    adjacency : (n_pairs,2) int array
        each row is a pair of face indices sharing an edge

    """
    import trimesh

    adjacency = trimesh.graph.face_adjacency(faces=faces)

    return np.array(adjacency, dtype=np.int64).reshape(-1,2)


def adjacency_edge_cost_matrix(V,E, n=None):
    r""" Build the weighted vertex adjacency matrix of a mesh or line given the vertices and the undirected edge connections. The weight of an edge is its Euclidean length

    Parameters
    ----------
    V : (n_points,d) array
        the vertices
    E : (n_edges,2) array
        the edge connections as integer vertex indices specifying how the vertices are joined together
    n : int
        if specified, the size of the matrix, if not the same as the number of points in V. the returned matrix will be of dimension ((n,n))

    Returns
    -------
    C : (n,n) sparse array
        the n x n symmetric matrix of edge lengths

    """
    import scipy.sparse as spsparse

    edge_norms = np.linalg.norm(V[E[:,0]]-V[E[:,1]], axis=-1)
    if n is None:
        n = len(V);
    C = spsparse.csr_matrix((edge_norms, (E[:,0], E[:,1])), shape=(n, n))
    C = C + C.transpose() # to make undirected.

    return C


def adjacency_matrix(E, n=None):
    r""" Build the unweighted symmetric vertex adjacency matrix from undirected edge connections

    Parameters
    ----------
    E : (n_edges,2) array
        the edge connections as integer vertex indices
    n : int
        if specified, the size of the matrix. Defaults to the largest vertex index + 1

    Returns
    -------
    C : (n,n) sparse array
        the n x n symmetric adjacency matrix

    """
    import scipy.sparse as spsparse

    if n is None:
        n = int(np.max(E)) + 1
    C = spsparse.csr_matrix((np.ones(len(E)), (E[:,0], E[:,1])), shape=(n, n))
    C = C + C.transpose()

    return C


def uniform_laplacian(f, n_vertices=None):
    r""" Positive semi-definite graph (Tutte) Laplacian of a triangle mesh with convention L = D - W, W the 0/1 vertex adjacency

    Parameters
    ----------
    f : (n_faces,3) array
        triangles
    n_vertices : int
        number of vertices. If None, the largest index in ``f`` plus one

    Returns
    -------
    L : (n_vertices,n_vertices) sparse array
        the Laplacian matrix

    """
    import scipy.sparse as spsparse

    W = adjacency_matrix(mesh_edges(f), n=n_vertices)
    L = spsparse.diags(np.squeeze(np.array(W.sum(axis=1))), 0) - W

    return spsparse.csr_matrix(L)


def shift_vertices_along_normals(vertices, vertex_normals, shift):
    r""" Displace vertices along their unit normals e.g. to move from a segmented surface onto the apical layer of the tissue

    Parameters
    ----------
    vertices : (n_vertices,3) array
        vertex coordinates
    vertex_normals : (n_vertices,3) array
        vertex normals, normalized internally
    shift : scalar
        signed displacement distance

    Returns
    -------
    vertices_shift : (n_vertices,3) array
        displaced vertices

    """
    vertex_normals = np.array(vertex_normals, dtype=np.float64)
    norms = np.linalg.norm(vertex_normals, axis=-1)
    norms[norms == 0] = 1.

    return np.array(vertices, dtype=np.float64) + float(shift) * vertex_normals / norms[:,None]


def planar_mesh(faces, uv):
    r""" Lift a 2D mesh into the plane z=0 of 3D as a trimesh.Trimesh, without processing so face indices are kept, to run the 3D proximity queries of trimesh on it

    Parameters
    ----------
    faces : (n_faces,3) array
        triangles of the planar mesh
    uv : (n_vertices,2) array
        2D vertex coordinates

    Returns
    -------
    mesh2d : trimesh.Trimesh
        the flat mesh

    """
    import trimesh

    faces = check_faces(faces)
    uv = np.array(uv, dtype=np.float64)[:,:2]
    v = np.hstack([uv, np.zeros(len(uv))[:,None]])

    return trimesh.Trimesh(v, faces, validate=False, process=False)


def locate_2d_pts_in_mesh(faces, uv, query_uv, eps=1e-8, mesh2d=None):
    r""" Find the triangle of a planar mesh containing each query point and the barycentric coordinates of the point inside it

    The closest point on the mesh is found with ``trimesh.proximity.ProximityQuery.on_surface`` and converted to barycentric coordinates with ``trimesh.triangles.points_to_barycentric``. Query points further than ``eps`` from the mesh lie outside its 2D domain.

    Parameters
    ----------
    faces : (n_faces,3) array
        triangles of the planar mesh
    uv : (n_vertices,2) array
        2D vertex coordinates
    query_uv : (n_query,2) array
        2D points to locate
    eps : scalar
        largest distance to the mesh for a point to count as inside it (on the edge)
    mesh2d : trimesh.Trimesh
        optional prebuilt flat mesh from :func:`planar_mesh`, reused when the same mesh is queried many times

    Returns
    -------
    tri_id : (n_query,) int array
        the containing triangle of each point, -1 if outside the mesh
    barycentric : (n_query,3) array
        barycentric weights inside ``tri_id``, NaN if outside the mesh

    """
    import trimesh

    faces = check_faces(faces)
    query_uv = np.array(query_uv, dtype=np.float64).reshape(-1,2)
    n_query = len(query_uv)

    tri_id = -np.ones(n_query, dtype=np.int64)
    barycentric = np.full((n_query,3), np.nan)
    valid = np.all(np.isfinite(query_uv), axis=1)
    if len(faces) == 0 or not np.any(valid):
        return tri_id, barycentric

    if mesh2d is None:
        mesh2d = planar_mesh(faces, uv)

    query = np.hstack([query_uv[valid], np.zeros(np.sum(valid))[:,None]])
    prox_mesh = trimesh.proximity.ProximityQuery(mesh2d)
    closest_pt, dist_pt, closest_tri = prox_mesh.on_surface(query)

    inside = dist_pt <= eps
    bary = trimesh.triangles.points_to_barycentric(mesh2d.vertices[mesh2d.faces[closest_tri[inside]]],
                                                   closest_pt[inside],
                                                   method='cross')
    valid_ids = np.arange(n_query)[valid][inside]
    tri_id[valid_ids] = closest_tri[inside]
    barycentric[valid_ids] = bary

    return tri_id, barycentric


def interpolate_2d_pts_3d_mesh(faces, uv, xyz, query_uv, eps=1e-8, mesh2d=None):
    r""" Map 2D points of a mesh parameterization to 3D (or any vertex associated values) by barycentric interpolation over the 2D-to-3D vertex correspondence

    Parameters
    ----------
    faces : (n_faces,3) array
        triangles shared by the 2D and 3D meshes
    uv : (n_vertices,2) array
        2D vertex coordinates e.g. the pullback (u,v) of a cut mesh
    xyz : (n_vertices,d) array
        vertex associated values to interpolate, typically the 3D embedding
    query_uv : (n_query,2) array
        2D points to map
    eps : scalar
        largest distance to the 2D mesh for a point to count as inside it
    mesh2d : trimesh.Trimesh
        optional prebuilt flat mesh, see :func:`planar_mesh`

    Returns
    -------
    xyz_query : (n_query,d) array
        interpolated values, NaN for points falling outside the 2D domain

    """
    faces = check_faces(faces)
    xyz = np.array(xyz, dtype=np.float64)
    squeeze = xyz.ndim == 1
    if squeeze:
        xyz = xyz[:,None]

    tri_id, barycentric = locate_2d_pts_in_mesh(faces, uv, query_uv, eps=eps, mesh2d=mesh2d)

    xyz_query = np.full((len(tri_id), xyz.shape[-1]), np.nan)
    found = tri_id >= 0
    if np.any(found):
        xyz_tri = xyz[faces[tri_id[found]]] # n_found x 3 x d
        xyz_query[found] = np.sum(barycentric[found][...,None] * xyz_tri, axis=1)

    if squeeze:
        xyz_query = xyz_query[:,0]
    return xyz_query


def chamfer_distance_point_cloud(pts1, pts2):
    r""" Compute the standard L2 chamfer distance (CD) between two points clouds. For each point in each cloud, CD finds the nearest point in the other point set, and finds the mean L2 distance.

    Given two point clouds, :math:`S_1, S_2`, the chamfer distance is defined as

    .. math::
        \text{CD}(S_1,S_2)=\frac{1}{|S_1|}\sum_{x\in S_1} {\min_{y\in S_2} ||x-y||_2} + \frac{1}{|S_2|}\sum_{x\in S_2} {\min_{y\in S_1} ||x-y||_2}

    Parameters
    ----------
    pts1 : (n_vertices_1,3) array
        the vertices of point cloud 1. The number of vertices can be different to that of ``pts2``
    pts2 : (n_vertices_2,3) array
        the vertices of point cloud 2. The number of vertices can be different to that of ``pts1``

    Returns
    -------
    chamfer_dist : scalar
        the chamfer distance between the two point clouds

    """
    import point_cloud_utils as pcu

    pts1_ = np.array(pts1, order='C', dtype=np.float64)
    pts2_ = np.array(pts2, order='C', dtype=np.float64)
    chamfer_dist = pcu.chamfer_distance(pts1_, pts2_)

    return float(chamfer_dist)


def hausdorff_distance_point_cloud(pts1, pts2):
    r""" Compute the two-sided Hausdorff distance (H) between two points clouds, the greatest of all the distances from a point in one point cloud to the closest point in the other point cloud.

    Parameters
    ----------
    pts1 : (n_vertices_1, 3) array
        the vertices of point cloud 1
    pts2 : (n_vertices_2, 3) array
        the vertices of point cloud 2

    Returns
    -------
    hausdorff_dist : scalar
        the Hausdorff distance between the two point clouds

    """
    import point_cloud_utils as pcu

    hausdorff_dist = pcu.hausdorff_distance(np.array(pts1, order='C', dtype=np.float64),
                                            np.array(pts2, order='C', dtype=np.float64))

    return float(hausdorff_dist)
