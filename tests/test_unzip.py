import numpy as np
import numpy.testing as npt
import pytest

from tubeUnwrap3D.Mesh import meshtools
from tubeUnwrap3D.Unzipping import unzip
from tubeUnwrap3D.Utility_Functions import exceptions


NU, NV = 6, 20


def _vid(i, j):
    return i*NV + j


STRAIGHT = [_vid(i,0) for i in range(NU)]


class TestCutMeshAlongPath:

    def test_counts_and_topology(self, tube):
        faces, vertices, normals = tube
        cut_mesh, cp1, cp2 = unzip.cut_mesh_along_path(faces, vertices, normals, STRAIGHT)

        assert len(cut_mesh.vertices) == len(vertices) + NU
        assert len(cut_mesh.vertex_normals) == len(vertices) + NU
        assert len(cut_mesh.faces) == len(faces)
        assert cut_mesh.euler_characteristic() == 1
        assert (cp1, cp2) == (STRAIGHT[0], STRAIGHT[-1])
        npt.assert_array_equal(cut_mesh.path, STRAIGHT)
        npt.assert_array_equal(cut_mesh.path_pairs[:,1], len(vertices) + np.arange(NU))

    def test_seam_vertices_appear_twice(self, tube):
        faces, vertices, normals = tube
        cut_mesh, _, _ = unzip.cut_mesh_along_path(faces, vertices, normals, STRAIGHT)

        npt.assert_allclose(cut_mesh.vertices[cut_mesh.path_pairs[:,1]], vertices[STRAIGHT])
        npt.assert_allclose(cut_mesh.vertices[cut_mesh.path_pairs[:,1]], cut_mesh.vertices[cut_mesh.path_pairs[:,0]])
        npt.assert_allclose(cut_mesh.vertex_normals[cut_mesh.path_pairs[:,1]], cut_mesh.vertex_normals[cut_mesh.path_pairs[:,0]])
        npt.assert_array_equal(cut_mesh.cut_inds_to_uncut_inds[cut_mesh.path_pairs[:,1]], STRAIGHT)
        npt.assert_array_equal(cut_mesh.cut_inds_to_uncut_inds[:len(vertices)], np.arange(len(vertices)))
        for pp, dd in cut_mesh.path_pairs:
            npt.assert_array_equal(cut_mesh.uncut_inds_to_cut_inds[pp], [pp, dd])
        assert len(cut_mesh.uncut_inds_to_cut_inds[_vid(2,5)]) == 1

        # both copies are used, never by the same face
        for pp, dd in cut_mesh.path_pairs:
            has_orig = np.any(cut_mesh.faces == pp, axis=1)
            has_dup = np.any(cut_mesh.faces == dd, axis=1)
            assert np.any(has_orig) and np.any(has_dup)
            assert not np.any(has_orig & has_dup)

    def test_faces_map_back_to_input(self, tube):
        faces, vertices, normals = tube
        cut_mesh, _, _ = unzip.cut_mesh_along_path(faces, vertices, normals, STRAIGHT)
        npt.assert_array_equal(cut_mesh.cut_inds_to_uncut_inds[cut_mesh.faces], faces)

    def test_inputs_not_modified(self, tube):
        faces, vertices, normals = tube
        faces0, vertices0, normals0 = faces.copy(), vertices.copy(), normals.copy()
        unzip.cut_mesh_along_path(faces, vertices, normals, STRAIGHT)
        npt.assert_array_equal(faces, faces0)
        npt.assert_array_equal(vertices, vertices0)
        npt.assert_array_equal(normals, normals0)

    def test_boundary_hugging_head_is_trimmed(self, tube):
        faces, vertices, normals = tube
        path = [_vid(0,3), _vid(1,3), _vid(0,2), _vid(0,1)] + STRAIGHT
        cut_mesh, cp1, cp2 = unzip.cut_mesh_along_path(faces, vertices, normals, path)

        assert (cp1, cp2) == (STRAIGHT[0], STRAIGHT[-1])
        npt.assert_array_equal(cut_mesh.path, STRAIGHT)
        assert cut_mesh.euler_characteristic() == 1

    def test_boundary_hugging_tail_is_trimmed(self, tube):
        faces, vertices, normals = tube
        path = STRAIGHT + [_vid(NU-1,1), _vid(NU-1,2), _vid(NU-2,1)]
        cut_mesh, cp1, cp2 = unzip.cut_mesh_along_path(faces, vertices, normals, path)
        assert (cp1, cp2) == (STRAIGHT[0], STRAIGHT[-1])

    def test_disjoint_boundary_regions_raise(self, tube):
        faces, vertices, normals = tube
        path = [_vid(0,1)] + STRAIGHT + [_vid(NU-1,1)]
        with pytest.raises(exceptions.PathDegeneracyError) as err:
            unzip.cut_mesh_along_path(faces, vertices, normals, path)
        assert err.value.ranges == [(0, 0), (NU, NU)]

    def test_non_cylinder_input(self, tube):
        faces, vertices, normals = tube
        # drop the column of quads between j=5 and j=6: the tube becomes a strip
        keep = np.ones(len(faces), dtype=bool)
        keep[10::2*NV] = False
        keep[11::2*NV] = False
        with pytest.raises(exceptions.NotATopologicalCylinder):
            unzip.cut_mesh_along_path(faces[keep], vertices, normals, STRAIGHT)

    def test_inconsistent_orientation(self, tube):
        faces, vertices, normals = tube
        faces = faces.copy()
        faces[0] = faces[0][[0, 2, 1]]
        with pytest.raises(exceptions.InvalidFaceOrientation) as err:
            unzip.cut_mesh_along_path(faces, vertices, normals, STRAIGHT)
        assert err.value.edge == (STRAIGHT[0], STRAIGHT[1])

    def test_propagation_cap(self, tube):
        faces, vertices, normals = tube
        with pytest.raises(exceptions.CutPropagationExceededMaxIterations) as err:
            unzip.cut_mesh_along_path(faces, vertices, normals, STRAIGHT, max_iter=0)
        assert err.value.n_unassigned > 0

    def test_path_must_follow_edges(self, tube):
        faces, vertices, normals = tube
        with pytest.raises(ValueError):
            unzip.cut_mesh_along_path(faces, vertices, normals, [_vid(0,0), _vid(2,0), _vid(NU-1,0)])

    def test_face_traverses_edge(self):
        assert unzip.face_traverses_edge([4, 7, 9], 7, 9)
        assert unzip.face_traverses_edge([4, 7, 9], 9, 4)
        assert not unzip.face_traverses_edge([4, 7, 9], 9, 7)
        with pytest.raises(ValueError):
            unzip.face_traverses_edge([4, 7, 9], 1, 7)


def test_cylinder_cut_mesh(tube):
    faces, vertices, normals = tube
    cut_mesh, cp1, cp2, path = unzip.cylinder_cut_mesh(faces, vertices, normals, _vid(0,0), _vid(NU-1,0))
    npt.assert_array_equal(path, STRAIGHT)
    assert cut_mesh.euler_characteristic() == 1
    assert len(meshtools.boundary_loops(cut_mesh.faces)) == 1


def test_cylinder_cut_mesh_rotated_start(tube):
    faces, vertices, normals = tube
    cut_mesh, cp1, cp2, path = unzip.cylinder_cut_mesh(faces, vertices, normals, _vid(0,7), _vid(NU-1,7))
    npt.assert_array_equal(path, [_vid(i,7) for i in range(NU)])
    assert cut_mesh.to_trimesh().faces.shape == faces.shape


@pytest.mark.parametrize('laplacian', ['uniform', 'cotangent'])
def test_rectangular_pullback(tube, laplacian):
    faces, vertices, normals = tube
    cut_mesh, _, _ = unzip.cut_mesh_along_path(faces, vertices, normals, STRAIGHT)
    uv = unzip.rectangular_pullback_cut_mesh(cut_mesh, laplacian=laplacian)

    ii, jj = np.divmod(np.arange(len(vertices)), NV)
    npt.assert_allclose(uv[:len(vertices),0], ii/(NU-1.), atol=1e-8)
    npt.assert_allclose(uv[:len(vertices),1], jj/float(NV), atol=1e-8)

    dup = cut_mesh.path_pairs[:,1]
    npt.assert_allclose(uv[dup,1], 1.)
    npt.assert_allclose(uv[dup,0], uv[STRAIGHT,0])
    assert np.all((uv >= -1e-12) & (uv <= 1+1e-12))


def test_rectangular_pullback_unknown_laplacian(tube):
    faces, vertices, normals = tube
    cut_mesh, _, _ = unzip.cut_mesh_along_path(faces, vertices, normals, STRAIGHT)
    with pytest.raises(ValueError):
        unzip.rectangular_pullback_cut_mesh(cut_mesh, laplacian='unknown')


def _signed_areas(uv, faces):
    a, b, c = uv[faces[:,0]], uv[faces[:,1]], uv[faces[:,2]]
    return 0.5*((b[:,0]-a[:,0])*(c[:,1]-a[:,1]) - (b[:,1]-a[:,1])*(c[:,0]-a[:,0]))


@pytest.mark.parametrize('seed', [0, 1, 2])
@pytest.mark.parametrize('k', [0, 3, 6, 10])
def test_diagonal_cuts_of_irregular_tubes(tube_factory, seed, k):
    faces, vertices, normals = tube_factory(NU, NV, alternate=True, jitter=0.3, seed=seed)
    cut_mesh, cp1, cp2, path = unzip.cylinder_cut_mesh(faces, vertices, normals, _vid(0,0), _vid(NU-1,k))

    assert cut_mesh.euler_characteristic() == 1
    assert len(meshtools.boundary_loops(cut_mesh.faces)) == 1
    dup, orig = cut_mesh.path_pairs[:,1], cut_mesh.path_pairs[:,0]
    npt.assert_array_equal(cut_mesh.vertices[dup], cut_mesh.vertices[orig])
    npt.assert_array_equal(cut_mesh.vertex_normals[dup], cut_mesh.vertex_normals[orig])

    uv = unzip.rectangular_pullback_cut_mesh(cut_mesh)
    assert np.all(np.isfinite(uv))
    areas = _signed_areas(uv, cut_mesh.faces)
    # no flipped triangles
    assert np.all(areas > 0) or np.all(areas < 0)
    npt.assert_allclose(np.abs(areas).sum(), 1.)
