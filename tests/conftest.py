import numpy as np
import pytest


def _tube(nU=6, nV=20, radius=1., dz=0.3, angle=0., alternate=False, jitter=0., seed=0):
    """Open cylinder of nU rings of nV vertices along z. Vertex (i,j) has index i*nV+j and every quad is split along its (i,j)-(i+1,j+1) diagonal, or along the other diagonal on every second quad if alternate. jitter randomly displaces the vertices by that fraction of the grid spacing, in angle everywhere and in z on the inner rings."""
    ii, jj = np.meshgrid(np.arange(nU), np.arange(nV), indexing='ij')
    theta = 2*np.pi*jj/float(nV) + angle
    zz = dz*ii.astype(np.float64)
    if jitter > 0:
        rng = np.random.RandomState(seed)
        theta = theta + jitter * 2*np.pi/float(nV) * (rng.rand(nU, nV) - 0.5)
        zz[1:-1] = zz[1:-1] + jitter * dz * (rng.rand(nU-2, nV) - 0.5)
    vertices = np.vstack([radius*np.cos(theta).ravel(),
                          radius*np.sin(theta).ravel(),
                          zz.ravel()]).T
    normals = np.vstack([np.cos(theta).ravel(), np.sin(theta).ravel(), np.zeros(nU*nV)]).T

    faces = []
    for i in range(nU-1):
        for j in range(nV):
            jp = (j+1) % nV
            a = i*nV + j
            b = (i+1)*nV + j
            c = (i+1)*nV + jp
            d = i*nV + jp
            if alternate and (i+j) % 2 == 1:
                faces.append([a, b, d])
                faces.append([b, c, d])
            else:
                faces.append([a, b, c])
                faces.append([a, c, d])
    faces = np.array(faces, dtype=np.int64)

    return faces, vertices, normals


@pytest.fixture
def tube_factory():
    return _tube


@pytest.fixture
def tube():
    return _tube()


@pytest.fixture
def helix():
    t = np.linspace(0, 4*np.pi, 400)
    return np.vstack([np.cos(t), np.sin(t), 0.2*t]).T


@pytest.fixture
def planar_circle():
    t = np.linspace(0, 2*np.pi, 200)
    return np.vstack([np.cos(t), np.sin(t), np.zeros_like(t)]).T
